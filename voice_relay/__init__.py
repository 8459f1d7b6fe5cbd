"""
Voice Relay - Twilio Media Streams to Gemini Live API Bridge

This application bridges a phone call carried over Twilio Media Streams with the
Gemini Live (BidiGenerateContent) API so that callers can talk to a generative
voice model in real time.

The telephony side speaks 8 kHz G.711 mu-law wrapped in JSON frames; the model
side speaks 16-bit linear PCM (16 kHz in, 24 kHz out) wrapped in its own JSON
control protocol. The relay transcodes audio in both directions and sequences
the setup handshake, interruptions and teardown for each call.

Key Components:
- audio: mu-law codec, sample-rate conversion and the two directional pipelines
- bot: the Gemini Live client and the per-call session state machine
- config: constants, environment-driven settings and logging setup
- models: pydantic schemas for both wire protocols and the session registry
- websocket_manager: accepts media-stream connections and runs one session each

Getting Started:
1. Set up environment variables:
   - GEMINI_API_KEY: Your Gemini API key
   - PORT: Port to run the server on (default 8000)
   - HOST: Host to bind the server to (default 0.0.0.0)
   - LOG_LEVEL: Logging level (default INFO)

2. Start the server:
   ```bash
   python run.py
   ```

3. Point the Twilio number's voice webhook at:
   - http://your-server:8000/twiml
"""
