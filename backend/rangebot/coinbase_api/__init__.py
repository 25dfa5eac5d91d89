"""
Coinbase API Integration

Provides modules for the Coinbase Advanced Trade API:
- Authentication (CDP JWT and HMAC signing)
- Order body construction
- Authenticated gateway for order submission
"""
