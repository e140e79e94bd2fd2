from django.core.management.base import BaseCommand
from django.contrib.auth import get_user_model

User = get_user_model()


class Command(BaseCommand):
    help = 'Create the initial admin user if it does not exist yet'

    def add_arguments(self, parser):
        parser.add_argument('--username', default='admin', help='Admin username (default: admin)')
        parser.add_argument('--password', default='admin', help='Admin password (default: admin)')

    def handle(self, *args, **options):
        username = options['username']

        if User.objects.filter(username=username).exists():
            self.stdout.write(self.style.WARNING(f'User "{username}" already exists, nothing to do'))
            return

        user = User(username=username, role='admin', is_staff=True, is_active=True)
        user.set_password(options['password'])
        user.save()
        self.stdout.write(self.style.SUCCESS(f'Created admin user "{username}"'))
