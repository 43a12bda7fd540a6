"""
Rate limiting configuration using slowapi.

Three tiers:
  • strict  – 5/min  (signup, prevents account spam)
  • auth    – 10/min (login, prevents password brute-force)
  • booking – 30/min (booking and payment writes)

Everything else falls under the 60/min default. The limiter keys on
client IP.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, default_limits=["60/minute"])

# Named rate strings for use in @limiter.limit() decorators
STRICT = "5/minute"     # signup
AUTH = "10/minute"      # login
BOOKING = "30/minute"   # booking / payment writes
