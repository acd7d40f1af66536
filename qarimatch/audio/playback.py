"""Local playback of a finished recording."""

import io
import logging
import wave

import pyaudio

from ..models.audio import RecordingArtifact

logger = logging.getLogger(__name__)


class ArtifactPlayer:
    """Plays WAV artifacts through the default output device."""

    def __init__(self, chunk_size: int = 1024):
        self.chunk_size = chunk_size

    def play(self, artifact: RecordingArtifact) -> float:
        """Play the artifact to completion (blocking). Returns seconds played."""
        if artifact.extension != ".wav":
            raise ValueError(f"Playback supports WAV only, got {artifact.mime_type}")

        pyaudio_instance = pyaudio.PyAudio()
        stream = None
        frames_played = 0
        try:
            with wave.open(io.BytesIO(artifact.data), 'rb') as wf:
                stream = pyaudio_instance.open(
                    format=pyaudio_instance.get_format_from_width(wf.getsampwidth()),
                    channels=wf.getnchannels(),
                    rate=wf.getframerate(),
                    output=True,
                )
                data = wf.readframes(self.chunk_size)
                while data:
                    stream.write(data)
                    frames_played += len(data) // (wf.getsampwidth() * wf.getnchannels())
                    data = wf.readframes(self.chunk_size)
                rate = wf.getframerate()
        finally:
            if stream is not None:
                stream.stop_stream()
                stream.close()
            pyaudio_instance.terminate()

        seconds = frames_played / float(rate)
        logger.info(f"Played {seconds:.1f}s of recording")
        return seconds
