"""
API boundary for the pronounce backend.

Design intent:
- Expose a health probe and a single assessment endpoint.
- Keep request validation explicit and failure modes predictable.
"""
