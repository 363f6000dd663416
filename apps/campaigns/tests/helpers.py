from datetime import timedelta
from decimal import Decimal
from django.contrib.auth import get_user_model
from django.utils import timezone

from apps.campaigns.models import Campaign, CampaignStatus, Organization
from apps.campaigns.search.results import SearchOutcome


def make_user(username='owner', **extra):
    return get_user_model().objects.create_user(
        username=username, email=f'{username}@example.org', password='testpass', **extra
    )


def make_organization(name='Helping Hands'):
    return Organization.objects.create(name=name)


def make_campaign(owner, organization, **fields):
    now = timezone.now()
    defaults = {
        'title': 'Clean water',
        'status': CampaignStatus.ACTIVE,
        'goal_amount': Decimal('1000.00'),
        'current_amount': Decimal('0.00'),
        'start_date': now - timedelta(days=10),
        'end_date': now + timedelta(days=20),
    }
    defaults.update(fields)
    created_at = defaults.pop('created_at', None)
    campaign = Campaign.objects.create(owner=owner, organization=organization, **defaults)
    if created_at is not None:
        Campaign.all_objects.filter(pk=campaign.pk).update(created_at=created_at)
        campaign.refresh_from_db()
    return campaign


class FakeSearchClient:
    """Records index queries and answers with a canned outcome."""

    bypassed = False

    def __init__(self, outcome=None):
        self.outcome = outcome or SearchOutcome.empty()
        self.queries = []

    def execute(self, query):
        self.queries.append(query)
        return self.outcome

    def search(self, term='', filters=(), sort=(), page=1, page_size=15):
        raise AssertionError('repositories should call execute()')
