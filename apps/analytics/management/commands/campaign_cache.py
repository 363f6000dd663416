from django.core.management.base import BaseCommand, CommandError
from apps.analytics.repository import CampaignAnalyticsRepository
from apps.campaigns.repository import CampaignRepository
from apps.campaigns.search import DatabaseSearchClient


class Command(BaseCommand):
    help = 'Warm, invalidate or inspect campaign list and analytics caches'

    def add_arguments(self, parser):
        parser.add_argument('action', choices=['warm', 'invalidate', 'stats'])
        parser.add_argument('--campaign', type=int, action='append', dest='campaign_ids',
                            help='Campaign id (repeatable); defaults to the standard warm candidates')
        parser.add_argument('--top-limit', type=int, default=50, help='Top performing campaigns to warm')
        parser.add_argument('--recent-days', type=int, default=7, help='Donation window for recently active campaigns')
        parser.add_argument('--recent-limit', type=int, default=100, help='Recently active campaigns to warm')
        parser.add_argument('--lists-only', action='store_true', help='Only touch campaign list caches')

    def handle(self, *args, **options):
        self.analytics = CampaignAnalyticsRepository()
        self.campaigns = CampaignRepository(search_client=DatabaseSearchClient())

        handler = getattr(self, f"handle_{options['action']}")
        handler(options)

    def handle_warm(self, options):
        report = self.campaigns.warm_popular_campaigns_cache()
        if not options['lists_only']:
            if options['campaign_ids']:
                report.merge(self.analytics.warm_cache_for_campaigns(options['campaign_ids']))
            else:
                report.merge(self.analytics.warm_top_performing_campaigns(options['top_limit']))
                report.merge(self.analytics.warm_recently_active_campaigns(
                    options['recent_days'], options['recent_limit'],
                ))
                report.merge(self.analytics.preload_trending_campaigns())
                report.merge(self.analytics.preload_ending_soon_campaigns())

        self.stdout.write(self.style.SUCCESS(f'✅ Warmed {len(report.warmed)} cache entries'))
        for name, error in report.failed.items():
            self.stdout.write(self.style.WARNING(f'⚠️  {name}: {error}'))

    def handle_invalidate(self, options):
        campaign_ids = options['campaign_ids']
        if options['lists_only']:
            removed = self.campaigns.invalidate_campaign_list_caches()
            self.stdout.write(self.style.SUCCESS(f'✅ Dropped {removed} campaign list entries'))
            return
        if not campaign_ids:
            raise CommandError('invalidate needs --campaign or --lists-only')

        for campaign_id in campaign_ids:
            self.analytics.invalidate_campaign_cache(campaign_id)
            self.campaigns.invalidate_campaign_cache(campaign_id)
        self.stdout.write(self.style.SUCCESS(f'✅ Invalidated caches for {len(campaign_ids)} campaigns'))

    def handle_stats(self, options):
        self.stdout.write('📊 Campaign list caches')
        for key, stats in self.campaigns.get_campaign_list_cache_statistics().items():
            self.stdout.write(f"  {key}: {'cached' if stats['cached'] else 'empty'}")

        for campaign_id in options['campaign_ids'] or []:
            stats = self.analytics.get_cache_statistics(campaign_id)
            self.stdout.write(f"  {stats['cache_key']}: {'cached' if stats['cached'] else 'empty'}")
