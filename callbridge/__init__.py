"""
Call Bridge - Telephony Media Stream to Realtime Voice Agent Bridge

This application bridges a carrier's bidirectional media stream (8 kHz mu-law
telephony audio) to a realtime voice agent session (16 kHz linear PCM), translating
codec, sample rate and framing in both directions while managing turn-taking for
the conversation.

Architecture Overview:
- FastAPI server exposing the call-setup markup, a health check and the media
  stream WebSocket endpoint
- One CallBridge per call, pairing the carrier connection with one agent connection
- A pure turn-taking state machine deciding when caller audio is committed and a
  reply requested
- Filler audio and heartbeats keeping the carrier leg alive

Key Components:
- audio: mu-law codec, resampler, packetizer and per-direction transcoding
- bot: agent client, turn manager, keep-alive tasks and the per-call bridge
- config: constants, settings and logging setup
- handlers: handlers for carrier media-stream events
- models: call state and the protocol schemas of both legs
- websocket_manager: accepts carrier connections and routes their events

Getting Started:
1. Set up environment variables (or a .env file):
   - OPENAI_API_KEY: Agent service API key
   - PORT / HOST: Listen address (default 0.0.0.0:8080)
   - VOICE, OPENAI_MODEL, AGENT_AUDIO_FORMAT: Agent options
   - LOG_LEVEL: Logging level (default INFO)

2. Start the server:
   ```bash
   python run.py
   ```

3. Point the carrier's voice webhook at https://your-server/twiml
"""
