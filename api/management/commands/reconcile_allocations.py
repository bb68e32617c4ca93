"""
Management command to repair stuck or inconsistent faculty allocations.

Normally the Celery beat sweep (reconcile_stuck_allocations) does this
every 15 minutes. Safe to re-run: consistent projects are left untouched.

Usage:
    python manage.py reconcile_allocations
    python manage.py reconcile_allocations --dry-run
    python manage.py reconcile_allocations --project 42
"""
from django.core.management.base import BaseCommand, CommandError

from api.utils.reconciliation import reconcile, reconcile_all


class Command(BaseCommand):
    help = 'Repair projects whose faculty allocation cascade is stuck or out of sync'

    def add_arguments(self, parser):
        parser.add_argument(
            '--project',
            type=int,
            help='Reconcile a single project by ID',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Report what would be repaired without changing anything',
        )

    def handle(self, *args, **options):
        if options['project']:
            if options['dry_run']:
                raise CommandError('--dry-run cannot be combined with --project')
            self._reconcile_one(options['project'])
            return

        self.stdout.write("Reconciling faculty allocations...")

        try:
            stats = reconcile_all(dry_run=options['dry_run'])
        except Exception as e:
            self.stdout.write(self.style.ERROR(f'✗ Error: {e}'))
            raise

        for detail in stats['details']:
            changes = detail.get('issues') or detail.get('actions')
            self.stdout.write(f"  Project {detail['project_id']}: {'; '.join(changes)}")
        for error in stats['errors']:
            self.stdout.write(self.style.ERROR(f"  Project {error['project_id']}: {error['error']}"))

        verb = 'need repair' if options['dry_run'] else 'repaired'
        count = len(stats['details']) if options['dry_run'] else stats['repaired']
        summary = f"Checked {stats['checked']} projects, {count} {verb}, {len(stats['errors'])} errors"

        if stats['errors']:
            self.stdout.write(self.style.WARNING(f'\n{summary}'))
        else:
            self.stdout.write(self.style.SUCCESS(f'\n✓ {summary}'))

    def _reconcile_one(self, project_id):
        result = reconcile(project_id)
        if not result['ok']:
            raise CommandError(result['message'])

        data = result['data']
        if data['repaired']:
            for action in data['actions']:
                self.stdout.write(f"  {action}")
        self.stdout.write(self.style.SUCCESS(f"✓ Project {project_id}: {result['message']}"))
