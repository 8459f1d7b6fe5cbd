"""
Bot module: the Gemini Live client and the per-call relay session.

Key components:
- GeminiLiveClient: WebSocket client for one Gemini Live session; sends
  schema-encoded messages and yields decoded server events.
- CallSession: owns one Twilio media-stream socket and one GeminiLiveClient,
  runs the setup handshake and relays transcoded audio in both directions.

Usage examples:
```python
from voice_relay.bot import CallSession, GeminiLiveClient
from voice_relay.config.settings import RelaySettings
from voice_relay.models.gemini_schemas import WireSchema

settings = RelaySettings.from_env()
client = GeminiLiveClient(settings.connect_url, WireSchema(settings.wire_schema))
await CallSession(websocket, client, settings).run()
```
"""

from voice_relay.bot.gemini_live import AudioPeerConnectionError, GeminiLiveClient
from voice_relay.bot.session import CallSession, HandshakeState

__all__ = ["AudioPeerConnectionError", "GeminiLiveClient", "CallSession", "HandshakeState"]
