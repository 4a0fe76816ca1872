# users/management/commands/seed_platform.py
from django.conf import settings
from django.core.management.base import BaseCommand
from django.db import transaction

from referrals.models import CommissionSettings
from tokens.services.price_service import TokenPriceService
from users.models import User


class Command(BaseCommand):
    help = 'Seed the starting token price, commission settings and a super admin account'

    def add_arguments(self, parser):
        parser.add_argument('--admin-email', default=settings.ADMIN_EMAIL)
        parser.add_argument('--admin-password', default=None)

    @transaction.atomic
    def handle(self, *args, **options):
        price = TokenPriceService().set_price(settings.DEFAULT_TOKEN_PRICE)
        self.stdout.write(f'Token price for {price.date}: ${price.price}')

        commission_settings = CommissionSettings.load()
        self.stdout.write(f'Referral rate: {commission_settings.referral_rate}%')

        email = options['admin_email']
        if User.objects.filter(email=email).exists():
            self.stdout.write(f'Super admin {email} already exists')
        elif options['admin_password']:
            User.objects.create_superuser(
                username='superadmin',
                email=email,
                password=options['admin_password'],
                first_name='Super',
                last_name='Admin',
            )
            self.stdout.write(f'Created super admin {email}')
        else:
            self.stdout.write(self.style.WARNING('No --admin-password given, skipping super admin'))

        self.stdout.write(self.style.SUCCESS('Platform seeded successfully'))
