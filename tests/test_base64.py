import math

import pytest

from smtpdkit.base64 import Base64Error, b64_ntop, b64_pton

SAMPLES = [b"", b"f", b"fo", b"foo", b"foob", b"fooba", b"foobar", bytes(range(256))]


def test_encode_known_values():
    assert b64_ntop(b"foobar") == "Zm9vYmFy"
    assert b64_ntop(b"fo") == "Zm8="
    assert b64_ntop(b"f") == "Zg=="


@pytest.mark.parametrize("data", SAMPLES)
def test_round_trip(data):
    assert b64_pton(b64_ntop(data)) == data


@pytest.mark.parametrize("data", SAMPLES)
def test_encoded_length(data):
    assert len(b64_ntop(data)) == 4 * math.ceil(len(data) / 3)


def test_empty_decodes_to_empty():
    assert b64_pton("") == b""


def test_whitespace_is_skipped_anywhere():
    assert b64_pton(" Zm9v\nYmFy\t") == b64_pton("Zm9vYmFy")


def test_whitespace_between_and_after_padding():
    assert b64_pton("Zg= =") == b64_pton("Zg==")
    assert b64_pton("Zg== \n") == b64_pton("Zg==")
    assert b64_pton("Zm8= ") == b64_pton("Zm8=")


def test_bytes_input_accepted():
    assert b64_pton(b"Zm9vYmFy") == b64_pton("Zm9vYmFy")


@pytest.mark.parametrize(
    "text",
    [
        "Zg=",  # missing second pad
        "Z===",  # pad in second position
        "====",  # pad in first position
        "=",
        "Zh==",  # slop bits non-zero
        "Zm9=",  # slop bits non-zero in three-char group
        "abc!",  # invalid character
        "Zm9",  # truncated, no padding
        "Z",
        "Zm8=x",  # data after padding
        "Zg==Zg==",
    ],
)
def test_invalid_input_raises(text):
    with pytest.raises(Base64Error):
        b64_pton(text)


def test_error_is_value_error():
    with pytest.raises(ValueError):
        b64_pton("@@@@")