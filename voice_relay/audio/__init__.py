"""
Audio module: G.711 mu-law companding, integer-ratio resampling and the
uplink/downlink transcoding pipelines used by every call session.

Usage examples:
```python
from voice_relay.audio import pipeline

pcm_16k = pipeline.uplink(mulaw_chunk)      # 160 bytes -> 640 bytes
mulaw_8k = pipeline.downlink(pcm_24k_chunk)  # 960 bytes -> 160 bytes
```
"""

from voice_relay.audio.codec import decode_sample, encode_sample
from voice_relay.audio.pipeline import downlink, uplink

__all__ = ["decode_sample", "encode_sample", "downlink", "uplink"]
