import pytest

from echobench.common import MESSAGE_SIZE, PAYLOAD
from echobench.frame import FRAME_SIZE, MAX_SEQ, Frame, FrameType, next_seq


def test_frame_size_matches_layout():
    assert FRAME_SIZE == 4 * 4 + MESSAGE_SIZE
    assert len(Frame().to_bytes()) == FRAME_SIZE


def test_default_frame_encodes_to_zero_bytes():
    assert Frame().to_bytes() == bytes(FRAME_SIZE)


def test_zero_bytes_decode_to_default_frame():
    assert Frame.from_bytes(bytes(FRAME_SIZE)) == Frame()


def test_payload_occupies_tail_of_frame():
    encoded = Frame(data=PAYLOAD).to_bytes()
    assert encoded[-MESSAGE_SIZE:] == PAYLOAD


@pytest.mark.parametrize(
    "frame",
    [
        Frame(FrameType.DATA, 3, 1, 0, PAYLOAD),
        Frame(FrameType.ACK, 499, 0, 1),
        Frame(FrameType.NACK, -1, 2**32 - 1, 2**32 - 1, b"xy"),
    ],
)
def test_round_trip(frame):
    assert Frame.from_bytes(frame.to_bytes()) == frame


def test_short_payload_is_padded():
    frame = Frame(data=b"ab")
    assert frame.data == b"ab".ljust(MESSAGE_SIZE, b"\0")


def test_type_is_coerced_from_int():
    frame = Frame(type=2)
    assert frame.type is FrameType.NACK


def test_payload_too_long_rejected():
    with pytest.raises(ValueError):
        Frame(data=PAYLOAD + b"Q")


@pytest.mark.parametrize("field", ["seq", "ack"])
def test_negative_sequence_fields_rejected(field):
    with pytest.raises(ValueError):
        Frame(**{field: -1})


def test_thread_id_out_of_range_rejected():
    with pytest.raises(ValueError):
        Frame(thread_id=2**31)


def test_unknown_type_rejected():
    with pytest.raises(ValueError):
        Frame(type=7)


@pytest.mark.parametrize("size", [0, FRAME_SIZE - 1, FRAME_SIZE + 1])
def test_wrong_length_rejected(size):
    with pytest.raises(ValueError):
        Frame.from_bytes(bytes(size))


def test_next_seq_alternates():
    assert next_seq(0) == 1
    assert next_seq(MAX_SEQ) == 0


def test_next_seq_wraps_values_beyond_max():
    assert next_seq(MAX_SEQ + 4) == 0


def test_next_seq_cycle_returns_to_start():
    seq = 0
    for _ in range(MAX_SEQ + 1):
        seq = next_seq(seq)
    assert seq == 0