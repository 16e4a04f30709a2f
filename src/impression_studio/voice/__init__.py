"""Voice subsystem.

Remote speech synthesis and transcription, the live voice-conversation
channel, and local capture/playback:

mic -> recorder -> (live agent, transcription) ... synthesis -> speaker
"""

from impression_studio.voice.live_session import LiveOverrides, LiveVoiceSession
from impression_studio.voice.stt import Transcriber
from impression_studio.voice.tts import SpeechSynthesizer, SynthesizedAudio

__all__ = [
    "LiveOverrides",
    "LiveVoiceSession",
    "SpeechSynthesizer",
    "SynthesizedAudio",
    "Transcriber",
]
