"""
Request rate limiting shared by the application and its routers.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

# Initialize rate limiter keyed by client address
limiter = Limiter(key_func=get_remote_address)
