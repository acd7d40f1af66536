"""Unit tests for the spectrum analyser and the loudness sampler."""

import asyncio

import pytest

from conftest import generate_pcm
from qarimatch.audio.analyser import SpectrumAnalyser
from qarimatch.audio.sampler import SignalSampler


@pytest.mark.unit
class TestSpectrumAnalyser:
    """Test cases for SpectrumAnalyser."""

    def test_no_input_is_zero(self):
        assert SpectrumAnalyser().loudness() == 0.0

    def test_silence_is_zero(self):
        analyser = SpectrumAnalyser()
        analyser.feed(generate_pcm("silence", 1024))

        assert analyser.loudness() == 0.0

    def test_noise_is_loud(self):
        analyser = SpectrumAnalyser()
        analyser.feed(generate_pcm("noise", 1024))

        level = analyser.loudness()
        assert 0.3 < level <= 1.0

    def test_loudness_stays_in_unit_range(self):
        analyser = SpectrumAnalyser(smoothing=0.0)
        for i in range(20):
            analyser.feed(generate_pcm("noise", 512, seed=i))
            assert 0.0 <= analyser.loudness() <= 1.0

    def test_byte_data_has_one_value_per_bin(self):
        analyser = SpectrumAnalyser(fft_size=512)
        analyser.feed(generate_pcm("sine", 512))

        data = analyser.byte_frequency_data()
        assert len(data) == 256
        assert data.max() > 0

    def test_short_chunks_accumulate(self):
        analyser = SpectrumAnalyser(smoothing=0.0)
        for i in range(8):
            analyser.feed(generate_pcm("noise", 32, seed=i))

        assert analyser.loudness() > 0.3

    def test_odd_byte_count_is_ignored_at_the_tail(self):
        analyser = SpectrumAnalyser()
        analyser.feed(generate_pcm("noise", 300) + b"\x01")
        assert analyser.loudness() > 0.0

    def test_stereo_is_mixed_down(self):
        analyser = SpectrumAnalyser()
        mono = generate_pcm("noise", 512)
        samples = [mono[i:i + 2] for i in range(0, len(mono), 2)]
        stereo = b"".join(s + s for s in samples)
        analyser.feed(stereo, channels=2)

        assert analyser.loudness() > 0.3

    def test_close_zeroes_output(self):
        analyser = SpectrumAnalyser()
        analyser.feed(generate_pcm("noise", 1024))
        analyser.close()
        analyser.close()

        assert analyser.closed is True
        assert analyser.loudness() == 0.0

    @pytest.mark.parametrize("fft_size", [0, 100, 16])
    def test_invalid_fft_size(self, fft_size):
        with pytest.raises(ValueError):
            SpectrumAnalyser(fft_size=fft_size)

    def test_invalid_smoothing(self):
        with pytest.raises(ValueError):
            SpectrumAnalyser(smoothing=1.0)


@pytest.mark.unit
class TestSignalSampler:
    """Test cases for SignalSampler."""

    def test_sample_appends_to_shared_buffer(self):
        buffer = []
        levels = []
        sampler = SignalSampler(buffer, on_level=levels.append)
        analyser = SpectrumAnalyser()
        analyser.feed(generate_pcm("noise", 1024))

        level = sampler.sample(analyser)

        assert buffer == [level]
        assert levels == [level]
        assert sampler.current_level == level

    def test_runs_until_stopped(self):
        buffer = []

        async def scenario():
            analyser = SpectrumAnalyser()
            analyser.feed(generate_pcm("noise", 1024))
            sampler = SignalSampler(buffer, refresh_rate_hz=1000)
            sampler.start(analyser)
            assert sampler.is_active
            await asyncio.sleep(0.05)
            sampler.stop()
            count = len(buffer)
            await asyncio.sleep(0.02)
            return sampler, count

        sampler, count = asyncio.run(scenario())

        assert count > 1
        assert len(buffer) == count
        assert sampler.is_active is False
        assert sampler.current_level == 0.0

    def test_stop_is_idempotent(self):
        sampler = SignalSampler([])
        sampler.stop()
        sampler.stop()
        assert sampler.is_active is False

    def test_finishes_when_analyser_closes(self):
        buffer = []

        async def scenario():
            analyser = SpectrumAnalyser()
            sampler = SignalSampler(buffer, refresh_rate_hz=1000)
            sampler.start(analyser)
            await asyncio.sleep(0.01)
            analyser.close()
            await asyncio.sleep(0.02)
            return sampler

        sampler = asyncio.run(scenario())
        assert sampler.is_active is False

    def test_rejects_non_positive_rate(self):
        with pytest.raises(ValueError):
            SignalSampler([], refresh_rate_hz=0)
