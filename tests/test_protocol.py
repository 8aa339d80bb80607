"""Tests for frame and command encoding and state-line decoding."""

import numpy as np
import pytest

from adalight.protocol import (
    COMMAND_MAGIC,
    HEADER_SIZE,
    MAGIC_WORD,
    CommandKind,
    create_matrix,
    decode_frame_pixels,
    decode_state_line,
    describe,
    encode_command,
    encode_frame,
    encode_header,
    frame_size,
    has_magic,
    is_announce,
    pad_colors,
    strip_magic,
)
from adalight.types import Color, DeviceState


def random_matrix(led_count, seed=0):
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, size=(led_count, 3), dtype=np.uint8)


class TestFrameHeader:
    """Test the strip-update header."""

    def test_header_for_every_led_count(self):
        """Length bytes and checksum hold for every 16-bit led count."""
        for led_count in range(1, 65536):
            header = encode_header(led_count)
            assert header[:3] == MAGIC_WORD
            assert header[3] == (led_count - 1) >> 8
            assert header[4] == (led_count - 1) & 0xFF
            assert header[5] == header[3] ^ header[4] ^ 0x55

    @pytest.mark.parametrize("led_count,hi,lo", [
        (1, 0, 0),
        (256, 0, 255),
        (257, 1, 0),
        (65536, 255, 255),
    ])
    def test_boundary_header_values(self, led_count, hi, lo):
        """Test boundary values of the length field."""
        frame = encode_frame(create_matrix(led_count))
        assert frame[3] == hi
        assert frame[4] == lo
        assert frame[5] == hi ^ lo ^ 0x55

    def test_length_field_wraps_above_16_bits(self):
        """led_count - 1 beyond 0xFFFF wraps rather than failing."""
        assert encode_header(65537)[3:5] == encode_header(1)[3:5]

    def test_known_header_bytes(self):
        """Test a hand-computed header for 60 leds."""
        # 59 = 0x003B, checksum 0x00 ^ 0x3B ^ 0x55 = 0x6E
        assert encode_header(60) == b"Ada\x00\x3b\x6e"


class TestFrameEncoding:
    """Test the full strip-update frame."""

    @pytest.mark.parametrize("led_count", [1, 3, 256, 1000])
    def test_pixel_body_round_trip(self, led_count):
        """Decoding the pixel body reproduces every led exactly."""
        matrix = random_matrix(led_count, seed=led_count)
        frame = encode_frame(matrix)

        decoded = decode_frame_pixels(frame, led_count)
        np.testing.assert_array_equal(decoded, matrix)

        body = frame[HEADER_SIZE:]
        for i in range(led_count):
            assert tuple(body[i * 3 : i * 3 + 3]) == tuple(int(c) for c in matrix[i])

    def test_frame_size_includes_reserved_byte(self):
        """Frame is 6 + n*3 + 1 bytes with a zero trailing byte."""
        frame = encode_frame(random_matrix(10))
        assert len(frame) == frame_size(10) == 6 + 10 * 3 + 1
        assert frame[-1] == 0

    def test_encode_from_color_sequence(self):
        """A list of colors encodes like the equivalent matrix."""
        colors = [Color(255, 0, 0), (0, 255, 0), Color(0, 0, 255)]
        frame = encode_frame(colors)
        assert frame[6:15] == bytes([255, 0, 0, 0, 255, 0, 0, 0, 255])
        assert frame == encode_frame(np.array(colors, dtype=np.uint8))

    def test_encoding_is_deterministic(self):
        matrix = random_matrix(50)
        assert encode_frame(matrix) == encode_frame(matrix.copy())

    def test_pad_colors(self):
        """Short color lists are padded with black, long ones truncated."""
        matrix = pad_colors([Color(1, 2, 3)], 3)
        assert matrix.tolist() == [[1, 2, 3], [0, 0, 0], [0, 0, 0]]

        matrix = pad_colors([Color(1, 1, 1)] * 5, 2)
        assert matrix.shape == (2, 3)


class TestCommandEncoding:
    """Test the 6-byte command frame."""

    def test_brightness_command(self):
        assert encode_command(CommandKind.BRIGHTNESS, 128) == b"AdbBR\x80"

    def test_state_query_command(self):
        assert encode_command(CommandKind.STATE) == b"AdbST\x00"

    def test_command_is_six_bytes(self):
        for value in (0, 1, 254, 255):
            command = encode_command(CommandKind.BRIGHTNESS, value)
            assert len(command) == 6
            assert command[:3] == COMMAND_MAGIC
            assert command[5] == value

    def test_kind_from_string(self):
        assert encode_command("BR", 5) == encode_command(CommandKind.BRIGHTNESS, 5)

    @pytest.mark.parametrize("payload", [-1, 256])
    def test_payload_out_of_range(self, payload):
        with pytest.raises(ValueError):
            encode_command(CommandKind.BRIGHTNESS, payload)

    def test_describe(self):
        assert "SET_BRIGHTNESS" in describe(encode_command(CommandKind.BRIGHTNESS, 9))
        assert "QUERY_STATE" in describe(encode_command(CommandKind.STATE))
        assert "3 leds" in describe(encode_frame(create_matrix(3)))


class TestStateDecoding:
    """Test parsing of state reply lines."""

    def test_plain_line(self):
        assert decode_state_line("N=30;B=128") == DeviceState(led_count=30, brightness=128)

    def test_garbage_keeps_previous(self):
        previous = DeviceState(led_count=12, brightness=40)
        assert decode_state_line("garbage", previous) == previous

    def test_empty_line_keeps_previous(self):
        previous = DeviceState(led_count=12, brightness=40)
        assert decode_state_line("", previous) == previous

    def test_magic_prefixed_line(self):
        assert decode_state_line("Ada N=10;B=5") == decode_state_line("N=10;B=5")
        assert decode_state_line("AdbN=10;B=5") == DeviceState(10, 5)

    def test_unknown_keys_ignored(self):
        state = decode_state_line("X=1;N=8;V=2.0;B=3;")
        assert state == DeviceState(led_count=8, brightness=3)

    def test_missing_brightness_keeps_previous(self):
        state = decode_state_line("N=8", DeviceState(led_count=2, brightness=77))
        assert state == DeviceState(led_count=8, brightness=77)

    def test_bad_values_ignored_per_field(self):
        state = decode_state_line("N=abc;B=9", DeviceState(led_count=5, brightness=1))
        assert state == DeviceState(led_count=5, brightness=9)

    def test_default_previous_is_unknown(self):
        assert decode_state_line("nothing here") == DeviceState()
        assert not DeviceState().is_known


class TestLineHelpers:
    """Test magic-token helpers."""

    def test_is_announce(self):
        assert is_announce("Ada")
        assert is_announce("Ada v1.2")
        assert not is_announce("Adb")
        assert not is_announce(" Ada")
        assert not is_announce("")

    def test_has_magic(self):
        assert has_magic("AdaN=1")
        assert has_magic("xxAdb")
        assert not has_magic("N=1;B=2")

    def test_strip_magic(self):
        assert strip_magic("Ada N=10;B=5") == "N=10;B=5"
        assert strip_magic("AdbAdaN=1") == "N=1"

    def test_strip_magic_only_leading(self):
        """Tokens inside keys or values are left alone."""
        assert strip_magic("  Ada Name=Adalight;N=3") == "Name=Adalight;N=3"
        assert strip_magic("N=3;Ada=1") == "N=3;Ada=1"

    def test_decode_keeps_values_containing_magic(self):
        state = decode_state_line("AdaFW=Adb1;N=6;B=2")
        assert state == DeviceState(led_count=6, brightness=2)
        assert decode_state_line("N=Ada7", DeviceState(3, 4)) == DeviceState(3, 4)
