"""
Tests for audio converter.
"""

import io
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from convertlab.converters.audio import (
    AudioConverter,
    SoundfileDecoder,
    SUPPORTED_INPUT_FORMATS,
    SUPPORTED_OUTPUT_FORMATS,
)
from convertlab.file_manager import FileManager
from convertlab.logging_config import DecodeError, FormatNotSupportedError
from convertlab.models import PcmAudioBuffer
from convertlab.pcm import WAV_HEADER_SIZE, parse_wav_header


@pytest.fixture
def stereo_decoder(sine_stereo):
    decoder = MagicMock()
    decoder.decode.return_value = PcmAudioBuffer(44100, sine_stereo)
    return decoder


class TestAudioConverter:
    """Tests for AudioConverter class."""

    def test_is_format_supported_input(self):
        """Test input format support check."""
        assert AudioConverter.is_format_supported("flac") is True
        assert AudioConverter.is_format_supported("wav") is True
        assert AudioConverter.is_format_supported("mid") is False

    def test_is_format_supported_output(self):
        """Test output format support check."""
        assert AudioConverter.is_format_supported("mp3", for_output=True) is True
        assert AudioConverter.is_format_supported("flac", for_output=True) is False

    def test_get_supported_formats(self):
        input_formats, output_formats = AudioConverter.get_supported_formats()
        assert input_formats == SUPPORTED_INPUT_FORMATS
        assert output_formats == SUPPORTED_OUTPUT_FORMATS

    def test_convert_bytes_to_wav(self, stereo_decoder):
        converter = AudioConverter(decoder=stereo_decoder)

        artifact = converter.convert_bytes("track.mp3", b"encoded", "wav")

        stereo_decoder.decode.assert_called_once_with(b"encoded")
        assert artifact.filename == "track.wav"
        assert artifact.size == WAV_HEADER_SIZE + 4410 * 2 * 2
        assert parse_wav_header(artifact.data).channels == 2

    def test_convert_bytes_to_mp3_uses_quality_bitrate(self, stereo_decoder):
        converter = AudioConverter(decoder=stereo_decoder)

        with patch("convertlab.converters.audio.encode_mp3") as mock_encode:
            converter.convert_bytes("track.FLAC", b"encoded", "mp3", quality="high")

        args, kwargs = mock_encode.call_args
        assert args[1] == 320
        assert kwargs["filename"] == "track.mp3"

    def test_convert_bytes_uses_configured_default_quality(self, stereo_decoder, monkeypatch):
        monkeypatch.setattr("convertlab.converters.audio.config.default_quality", "medium")
        monkeypatch.setattr("convertlab.converters.audio.config.mp3_bitrate_kbps", None)
        converter = AudioConverter(decoder=stereo_decoder)

        with patch("convertlab.converters.audio.encode_mp3") as mock_encode:
            converter.convert_bytes("a.wav", b"x", "mp3")

        assert mock_encode.call_args.args[1] == 192

    def test_convert_bytes_explicit_bitrate(self, stereo_decoder):
        converter = AudioConverter(decoder=stereo_decoder)

        with patch("convertlab.converters.audio.encode_mp3") as mock_encode:
            converter.convert_bytes("a.wav", b"x", "mp3", quality="low", bitrate_kbps=96)

        assert mock_encode.call_args.args[1] == 96

    def test_convert_bytes_unsupported_target(self, stereo_decoder):
        converter = AudioConverter(decoder=stereo_decoder)

        with pytest.raises(FormatNotSupportedError):
            converter.convert_bytes("a.wav", b"x", "aac")

        stereo_decoder.decode.assert_not_called()

    def test_decode_failure_propagates(self):
        decoder = MagicMock()
        decoder.decode.side_effect = DecodeError("bad stream")

        with pytest.raises(DecodeError):
            AudioConverter(decoder=decoder).convert_bytes("a.flac", b"x", "mp3")

    @pytest.mark.asyncio
    async def test_convert_writes_file(self, tmp_path, stereo_decoder):
        source = tmp_path / "voice.mp3"
        source.write_bytes(b"encoded")
        converter = AudioConverter(
            file_manager=FileManager(min_disk_space_mb=1), decoder=stereo_decoder
        )

        result = await converter.convert(source, "wav")

        assert result == tmp_path / "voice.wav"
        assert result.stat().st_size == WAV_HEADER_SIZE + 4410 * 4

    @pytest.mark.asyncio
    async def test_convert_unsupported_format(self):
        """Test conversion with unsupported format raises error."""
        converter = AudioConverter()

        with pytest.raises(Exception) as exc_info:
            await converter.convert("test.mp3", "mid")

        assert "not supported" in str(exc_info.value).lower()


class TestSoundfileDecoder:
    """Decoding through libsndfile."""

    def test_decodes_wav(self, sine_stereo):
        sf = pytest.importorskip("soundfile")
        buf = io.BytesIO()
        sf.write(buf, sine_stereo.T, 44100, format="WAV", subtype="PCM_16")

        pcm = SoundfileDecoder().decode(buf.getvalue())

        assert pcm.sample_rate == 44100
        assert pcm.channels == 2
        assert pcm.frames == 4410
        assert np.allclose(pcm.channel(0), sine_stereo[0], atol=1e-3)

    def test_rejects_garbage(self):
        pytest.importorskip("soundfile")

        with pytest.raises(DecodeError):
            SoundfileDecoder().decode(b"definitely not audio")

    def test_flac_to_wav_round_trip(self, sine_stereo):
        sf = pytest.importorskip("soundfile")
        buf = io.BytesIO()
        sf.write(buf, sine_stereo.T, 44100, format="FLAC")

        artifact = AudioConverter().convert_bytes("take1.flac", buf.getvalue(), "wav")

        header = parse_wav_header(artifact.data)
        assert artifact.filename == "take1.wav"
        assert header.sample_rate == 44100
        assert header.data_size == 4410 * 4

    def test_empty_wav_to_mp3(self):
        sf = pytest.importorskip("soundfile")
        pytest.importorskip("lameenc")
        buf = io.BytesIO()
        sf.write(buf, np.zeros((0, 1), dtype=np.float32), 44100, format="WAV", subtype="PCM_16")

        artifact = AudioConverter().convert_bytes("empty.wav", buf.getvalue(), "mp3")

        assert artifact.filename == "empty.mp3"
        assert artifact.data == b""
