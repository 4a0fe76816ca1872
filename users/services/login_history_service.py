# users/services/login_history_service.py
import logging

from django.db.models import Count, Q

from users.models import LoginHistory

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 50

PRIVATE_PREFIXES = ('192.168.', '10.', '172.')
LOCAL_ADDRESSES = ('127.0.0.1', '::1', 'localhost', 'unknown')


def get_client_ip(request):
    """
    Real client IP behind proxies: first X-Forwarded-For hop, then
    X-Real-IP, then the socket address.
    """
    forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded_for:
        return forwarded_for.split(',')[0].strip()

    real_ip = request.META.get('HTTP_X_REAL_IP')
    if real_ip:
        return real_ip.strip()

    return request.META.get('REMOTE_ADDR') or 'unknown'


def describe_location(ip_address):
    if ip_address in LOCAL_ADDRESSES:
        return 'Local'
    if ip_address.startswith(PRIVATE_PREFIXES):
        return 'Private Network'
    return 'Unknown Location'


def parse_user_agent(user_agent):
    """Coarse (device_type, browser) from a User-Agent header"""
    ua = user_agent.lower()

    if 'ipad' in ua or 'tablet' in ua:
        device_type = 'Tablet'
    elif 'mobile' in ua or 'android' in ua or 'iphone' in ua:
        device_type = 'Mobile'
    else:
        device_type = 'Desktop'

    # Edge and Opera also advertise Chrome, and Chrome advertises Safari
    if 'edg' in ua:
        browser = 'Edge'
    elif 'opr' in ua or 'opera' in ua:
        browser = 'Opera'
    elif 'firefox' in ua:
        browser = 'Firefox'
    elif 'chrome' in ua:
        browser = 'Chrome'
    elif 'safari' in ua:
        browser = 'Safari'
    else:
        browser = 'Unknown'

    return device_type, browser


class LoginHistoryService:
    """Sign-in audit trail shown on the account security page"""

    def record(self, user, request, status=LoginHistory.Status.SUCCESS):
        ip_address = get_client_ip(request)
        user_agent = request.META.get('HTTP_USER_AGENT', '')
        device_type, browser = parse_user_agent(user_agent)

        entry = LoginHistory.objects.create(
            user=user,
            ip_address=ip_address,
            user_agent=user_agent,
            status=status,
            location=describe_location(ip_address),
            device_type=device_type,
            browser=browser,
        )
        logger.info(f"Login {status} for {user.email} from {ip_address} ({device_type}, {browser})")
        return entry

    def recent(self, user, limit=HISTORY_LIMIT):
        return LoginHistory.objects.filter(user=user).order_by('-created_at')[:limit]

    def stats(self, user):
        entries = LoginHistory.objects.filter(user=user)
        totals = entries.aggregate(
            total=Count('id'),
            successful=Count('id', filter=Q(status=LoginHistory.Status.SUCCESS)),
            failed=Count('id', filter=Q(status=LoginHistory.Status.FAILED)),
            unique_ips=Count('ip_address', distinct=True),
        )
        last = entries.filter(status=LoginHistory.Status.SUCCESS).order_by('-created_at').first()
        return {
            'totalLogins': totals['total'],
            'successfulLogins': totals['successful'],
            'failedLogins': totals['failed'],
            'uniqueIPs': totals['unique_ips'],
            'lastLogin': last.created_at if last else None,
        }
