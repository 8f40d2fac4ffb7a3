# Relay package
#
# Provides:
#  - FastAPI-based WebSocket relay between one "controller" and one "producer"
#  - Role registry (one live connection per role)
#  - Frame classification (JSON control envelope vs opaque binary)
#  - Role-aware routing with bounded sends
#
# See hostlink/relay/node.py for the app entry point.
