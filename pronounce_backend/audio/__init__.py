"""
Audio payload boundary for the pronunciation relay.

Design intent:
- Resolve the container of an inbound clip before any upstream call.
- Reject containers the assessment service cannot decode.
- Never transcode; bytes are forwarded as received.
"""
