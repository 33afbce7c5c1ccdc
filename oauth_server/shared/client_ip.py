"""Helper to extract the real client IP from request headers."""

from fastapi import Request


def get_real_client_ip(request: Request) -> str:
    """Get real client IP from headers or connection.

    Checks headers in priority order:
    1. X-Real-IP (nginx)
    2. X-Forwarded-For (standard proxy - first IP)
    3. Forwarded (RFC 7239 ``for=`` directive)
    4. request.client.host (fallback)
    """
    real_ip = request.headers.get('x-real-ip')
    if real_ip:
        return real_ip.strip()

    forwarded_for = request.headers.get('x-forwarded-for')
    if forwarded_for:
        return forwarded_for.split(',')[0].strip()

    forwarded = request.headers.get('forwarded')
    if forwarded:
        # "for=192.0.2.60;proto=http;by=203.0.113.43"
        for part in forwarded.split(';'):
            part = part.strip()
            if part.lower().startswith('for='):
                return part.split('=', 1)[1].strip('"[]')

    if request.client:
        return request.client.host

    return "unknown"
