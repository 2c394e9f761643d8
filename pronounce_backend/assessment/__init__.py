"""
Pronunciation assessment boundary.

Design intent:
- Own the upstream speech API contract (URL, headers, body parsing).
- Map the detailed recognition response to a small score/grade payload.
- Keep every read of the upstream body explicit about presence and type.
"""
