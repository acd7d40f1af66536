"""Unit tests for CaptureController."""

import asyncio
import io
import wave

import pytest

from conftest import FakeInputDevice, make_capture, record_for
from qarimatch.audio.capture import CaptureController
from qarimatch.audio.device import DeviceBusyError, PermissionDeniedError
from qarimatch.models.audio import CaptureProfile


@pytest.mark.unit
class TestCaptureController:
    """Test cases for CaptureController."""

    def test_initial_state(self, loud_device):
        capture = make_capture(loud_device)

        assert capture.is_recording is False
        assert capture.is_busy is False
        assert capture.elapsed_seconds == 0
        assert capture.artifact is None
        assert capture.loudness_samples == []

    def test_record_and_stop_produces_wav_artifact(self, loud_device):
        capture = make_capture(loud_device)

        async def scenario():
            assert await capture.start() is True
            assert capture.is_recording
            await record_for(capture, 3)
            return await capture.stop()

        artifact = asyncio.run(scenario())

        assert artifact is not None
        assert artifact is capture.artifact
        assert artifact.mime_type == "audio/wav"
        assert artifact.size_bytes > 0
        assert capture.elapsed_seconds == 3
        assert capture.is_recording is False
        assert loud_device.last_stream.close_calls == 1
        assert len(capture.loudness_samples) > 0
        assert all(0.0 <= level <= 1.0 for level in capture.loudness_samples)

        with wave.open(io.BytesIO(artifact.data), 'rb') as wf:
            assert wf.getnchannels() == 1
            assert wf.getsampwidth() == 2
            assert wf.getframerate() == 44100
            assert wf.getnframes() > 0

    def test_requests_configured_profile(self, loud_device):
        profile = CaptureProfile(sample_rate=16000, channels=1)
        capture = make_capture(loud_device, profile=profile)

        async def scenario():
            await capture.start()
            return await capture.stop()

        artifact = asyncio.run(scenario())

        assert loud_device.profiles == [profile]
        assert artifact.sample_rate == 16000

    def test_start_while_recording_is_rejected(self, loud_device):
        capture = make_capture(loud_device)

        async def scenario():
            await capture.start()
            second = await capture.start()
            await capture.stop()
            return second

        assert asyncio.run(scenario()) is False
        assert len(loud_device.streams) == 1

    def test_timer_clamps_at_maximum_and_stops_once(self, loud_device):
        finalized = []
        capture = make_capture(loud_device, max_duration_seconds=120, on_finalized=finalized.append)

        async def scenario():
            await capture.start()
            await record_for(capture, 125)

        asyncio.run(scenario())

        assert capture.elapsed_seconds == 120
        assert capture.is_recording is False
        assert capture.artifact is not None
        assert loud_device.last_stream.close_calls == 1
        assert len(finalized) == 1

    def test_timer_task_enforces_ceiling_by_itself(self, loud_device):
        ticks = []
        capture = make_capture(loud_device, max_duration_seconds=3, timer_interval=0.01,
                               on_tick=ticks.append)

        async def scenario():
            await capture.start()
            for _ in range(200):
                if not capture.is_recording and not capture.is_busy:
                    break
                await asyncio.sleep(0.01)

        asyncio.run(scenario())

        assert ticks == [1, 2, 3]
        assert capture.elapsed_seconds == 3
        assert capture.artifact is not None
        assert loud_device.last_stream.close_calls == 1

    def test_double_stop_finalizes_once(self, loud_device):
        finalized = []
        capture = make_capture(loud_device, on_finalized=finalized.append)

        async def scenario():
            await capture.start()
            await record_for(capture, 1)
            first, second = await asyncio.gather(capture.stop(), capture.stop())
            third = await capture.stop()
            return first, second, third

        first, second, third = asyncio.run(scenario())

        assert first is not None
        assert second is first
        assert third is None
        assert len(finalized) == 1
        assert loud_device.last_stream.close_calls == 1

    def test_stop_when_idle_is_noop(self, loud_device):
        capture = make_capture(loud_device)
        assert asyncio.run(capture.stop()) is None
        assert loud_device.streams == []

    def test_device_error_propagates_and_leaves_idle(self):
        device = FakeInputDevice(error=PermissionDeniedError("user said no"))
        capture = make_capture(device)

        with pytest.raises(PermissionDeniedError):
            asyncio.run(capture.start())

        assert capture.is_recording is False
        assert capture.is_busy is False
        assert capture.artifact is None

    def test_can_retry_after_device_error(self):
        device = FakeInputDevice(error=DeviceBusyError())
        capture = make_capture(device)

        async def scenario():
            with pytest.raises(DeviceBusyError):
                await capture.start()
            device.error = None
            started = await capture.start()
            await capture.stop()
            return started

        assert asyncio.run(scenario()) is True
        assert capture.artifact is not None

    def test_new_recording_discards_previous(self, loud_device):
        capture = make_capture(loud_device)

        async def scenario():
            await capture.start()
            await record_for(capture, 2)
            first = await capture.stop()
            await capture.start()
            assert capture.artifact is None
            assert capture.elapsed_seconds == 0
            await record_for(capture, 1)
            second = await capture.stop()
            return first, second

        first, second = asyncio.run(scenario())

        assert second is not first
        assert capture.artifact is second
        assert capture.elapsed_seconds == 1
        assert len(loud_device.streams) == 2
        assert all(stream.close_calls == 1 for stream in loud_device.streams)

    def test_silent_input_yields_zero_levels(self, silent_device):
        capture = make_capture(silent_device)

        async def scenario():
            await capture.start()
            await record_for(capture, 1)
            await capture.stop()

        asyncio.run(scenario())

        assert capture.loudness_samples
        assert max(capture.loudness_samples) == 0.0

    def test_recording_continues_without_analysis(self, loud_device):
        capture = make_capture(loud_device, fft_size=100)

        async def scenario():
            started = await capture.start()
            await record_for(capture, 1)
            await capture.stop()
            return started

        assert asyncio.run(scenario()) is True
        assert capture.analysis_error is not None
        assert capture.loudness_samples == []
        assert capture.artifact is not None
        assert capture.artifact.size_bytes > 44

    def test_discard_refused_while_recording(self, loud_device):
        capture = make_capture(loud_device)

        async def scenario():
            await capture.start()
            await record_for(capture, 1)
            capture.discard()
            assert capture.elapsed_seconds == 1
            await capture.stop()
            capture.discard()

        asyncio.run(scenario())

        assert capture.artifact is None
        assert capture.loudness_samples == []
        assert capture.elapsed_seconds == 0

    def test_close_releases_active_recording(self, loud_device):
        capture = make_capture(loud_device)

        async def scenario():
            await capture.start()
            await capture.close()
            await capture.close()

        asyncio.run(scenario())

        assert capture.is_recording is False
        assert loud_device.last_stream.close_calls == 1

    def test_failing_stream_close_still_finalizes(self, loud_device):
        capture = make_capture(loud_device)

        async def scenario():
            await capture.start()
            await record_for(capture, 1)

            def broken_close():
                raise OSError("device vanished")
            loud_device.last_stream.close = broken_close
            return await capture.stop()

        artifact = asyncio.run(scenario())

        assert artifact is not None
        assert capture.is_recording is False

    def test_stream_failure_stops_recording(self):
        device = FakeInputDevice("noise", fail_after=5)
        finalized = []
        capture = make_capture(device, on_finalized=finalized.append)

        async def scenario():
            await capture.start()
            for _ in range(200):
                if not capture.is_recording and not capture.is_busy:
                    break
                await asyncio.sleep(0.01)
            samples = len(capture.loudness_samples)
            await asyncio.sleep(0.05)
            return samples

        samples_at_stop = asyncio.run(scenario())

        assert capture.is_recording is False
        assert capture.capture_error == "device unplugged"
        assert device.last_stream.reads == 5
        assert device.last_stream.close_calls == 1
        assert len(finalized) == 1
        assert len(capture.loudness_samples) == samples_at_stop

    def test_restart_after_stream_failure_clears_error(self):
        device = FakeInputDevice("noise", fail_after=2)

        async def scenario():
            capture = make_capture(device)
            await capture.start()
            for _ in range(200):
                if not capture.is_busy:
                    break
                await asyncio.sleep(0.01)
            device.fail_after = None
            await capture.start()
            error_while_recording = capture.capture_error
            await capture.stop()
            return error_while_recording

        assert asyncio.run(scenario()) is None

    def test_recording_stats(self, loud_device):
        capture = make_capture(loud_device, max_duration_seconds=60)

        async def scenario():
            await capture.start()
            await record_for(capture, 2)
            stats = capture.get_recording_stats()
            await capture.stop()
            return stats

        stats = asyncio.run(scenario())

        assert stats.is_recording is True
        assert stats.elapsed_seconds == 2
        assert stats.max_duration_seconds == 60
        assert stats.total_chunks > 0
        assert stats.total_bytes > 0

    def test_default_cadences(self, loud_device):
        capture = CaptureController(device=loud_device)

        assert capture.max_duration_seconds == 120
        assert capture.timer_interval == 1.0
        assert capture.profile == CaptureProfile()
