"""Microphone acquisition and the PortAudio fault mapping."""

import errno
import logging
from abc import ABC, abstractmethod
from typing import Optional

import pyaudio

from ..models.audio import CaptureProfile
from ..models.faults import FaultKind, FAULT_MESSAGES

logger = logging.getLogger(__name__)


class CaptureError(Exception):
    """Raised when the input device cannot be acquired."""
    kind = FaultKind.CAPTURE_FAILED

    def __init__(self, detail: str = ""):
        self.detail = detail
        super().__init__(FAULT_MESSAGES[self.kind] if not detail else f"{FAULT_MESSAGES[self.kind]} ({detail})")


class PermissionDeniedError(CaptureError):
    kind = FaultKind.PERMISSION_DENIED


class DeviceNotFoundError(CaptureError):
    kind = FaultKind.DEVICE_NOT_FOUND


class CaptureUnsupportedError(CaptureError):
    kind = FaultKind.CAPTURE_UNSUPPORTED


class DeviceBusyError(CaptureError):
    kind = FaultKind.DEVICE_BUSY


class CaptureFailedError(CaptureError):
    kind = FaultKind.CAPTURE_FAILED


class InputStream(ABC):
    """An open microphone stream delivering 16-bit PCM."""

    @abstractmethod
    def read_available(self) -> bytes:
        """Return whatever PCM is buffered right now, without blocking."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Stop the hardware stream and release the device."""
        pass


class AudioInputDevice(ABC):
    """Source of input streams for a capture profile."""

    @abstractmethod
    def open(self, profile: CaptureProfile) -> InputStream:
        """Acquire the device exclusively.

        Raises:
            CaptureError: one of the subclasses describing why access failed
        """
        pass


_UNSUPPORTED_CODES = {
    pyaudio.paInvalidChannelCount,
    pyaudio.paInvalidSampleRate,
    pyaudio.paSampleFormatNotSupported,
    pyaudio.paBadIODeviceCombination,
}


def map_portaudio_error(error: Exception) -> CaptureError:
    """Translate a PyAudio/PortAudio failure into a capture fault."""
    # PyAudio raises IOError(message, code), so errno may hold the message
    code = getattr(error, "errno", None)
    if not isinstance(code, int):
        code = next((arg for arg in error.args if isinstance(arg, int)), None)
    text = " ".join(str(arg) for arg in error.args).lower()

    if code == errno.EACCES or code == errno.EPERM or "permission" in text:
        return PermissionDeniedError(str(error))
    if code == pyaudio.paInvalidDevice or "no default input device" in text:
        return DeviceNotFoundError(str(error))
    if code == pyaudio.paDeviceUnavailable or code == errno.EBUSY or "busy" in text:
        return DeviceBusyError(str(error))
    if code in _UNSUPPORTED_CODES:
        return CaptureUnsupportedError(str(error))
    return CaptureFailedError(str(error))


class PyAudioInputStream(InputStream):
    """Non-blocking reader over a PyAudio input stream."""

    def __init__(self, pyaudio_instance: pyaudio.PyAudio, stream):
        self.pyaudio_instance: Optional[pyaudio.PyAudio] = pyaudio_instance
        self.stream = stream
        self.closed = False

    def read_available(self) -> bytes:
        if self.closed:
            return b""
        available = self.stream.get_read_available()
        if available <= 0:
            return b""
        return self.stream.read(available, exception_on_overflow=False)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            if self.stream.is_active():
                self.stream.stop_stream()
            self.stream.close()
        finally:
            if self.pyaudio_instance:
                self.pyaudio_instance.terminate()
                self.pyaudio_instance = None
        logger.info("Microphone stream closed")


class PyAudioInputDevice(AudioInputDevice):
    """Default system microphone via PyAudio."""

    def __init__(self, frames_per_buffer: int = 4410, device_index: Optional[int] = None):
        self.frames_per_buffer = frames_per_buffer
        self.device_index = device_index

    def open(self, profile: CaptureProfile) -> InputStream:
        pyaudio_instance = pyaudio.PyAudio()
        try:
            if self.device_index is None:
                device_info = pyaudio_instance.get_default_input_device_info()
            else:
                device_info = pyaudio_instance.get_device_info_by_index(self.device_index)
            if int(device_info.get("maxInputChannels", 0)) < profile.channels:
                raise CaptureUnsupportedError(
                    f"{device_info.get('name')} has no {profile.channels}-channel input"
                )

            # PortAudio has no switches for these; the host audio stack owns them.
            logger.debug(
                f"Capture processing requested: echo_cancellation={profile.echo_cancellation}, "
                f"noise_suppression={profile.noise_suppression}, "
                f"auto_gain_control={profile.auto_gain_control}"
            )

            stream = pyaudio_instance.open(
                format=pyaudio_instance.get_format_from_width(profile.sample_width),
                channels=profile.channels,
                rate=profile.sample_rate,
                input=True,
                input_device_index=int(device_info["index"]),
                frames_per_buffer=self.frames_per_buffer,
            )
        except CaptureError:
            pyaudio_instance.terminate()
            raise
        except (OSError, ValueError) as e:
            pyaudio_instance.terminate()
            fault = map_portaudio_error(e)
            logger.error(f"Microphone acquisition failed ({fault.kind.value}): {e}")
            raise fault from e

        logger.info(f"Microphone stream opened on '{device_info.get('name')}': "
                    f"{profile.sample_rate}Hz, {profile.channels} channel(s)")
        return PyAudioInputStream(pyaudio_instance, stream)
