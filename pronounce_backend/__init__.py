"""
Pronounce backend package.

Design intent:
- Relay browser pronunciation clips to the Azure Speech assessment API.
- Keep the relay stateless; configuration is read once at startup.
"""
