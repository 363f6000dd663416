import logging
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class WarmReport:
    """Outcome of a warm pass: what was populated and what failed, by name."""

    warmed: list = field(default_factory=list)
    failed: dict = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed

    def run(self, name, func):
        """Run one warm step; a failure is logged and recorded, never raised."""
        try:
            func()
        except Exception as e:
            logger.warning(f"Cache warm failed for {name}: {e}", extra={'warm_item': str(name), 'error': str(e)})
            self.failed[str(name)] = str(e)
            return False
        self.warmed.append(str(name))
        return True

    def merge(self, other):
        self.warmed.extend(other.warmed)
        self.failed.update(other.failed)
        return self

    def as_dict(self) -> dict:
        return {
            'warmed': list(self.warmed),
            'failed': dict(self.failed),
            'warmed_count': len(self.warmed),
            'failed_count': len(self.failed),
        }
