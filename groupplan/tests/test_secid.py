import re

import pytest

from groupplan.core.secid import generate_secret, secure_identifier


def test_identifier_is_url_safe():
    for _ in range(50):
        assert re.fullmatch(r"[A-Za-z0-9_-]+", secure_identifier())


def test_identifier_length_scales_with_bytes():
    # base64 without padding: 4 chars per 3 bytes
    assert len(secure_identifier(16)) == 22
    assert len(secure_identifier(24)) == 32


def test_identifiers_do_not_repeat():
    assert len({secure_identifier() for _ in range(200)}) == 200


def test_non_positive_length_rejected():
    with pytest.raises(ValueError):
        secure_identifier(0)


def test_generated_secret_is_long():
    assert len(generate_secret()) >= 64
