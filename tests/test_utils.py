"""Tests for token and filename validation."""
import uuid

import pytest

from errors import InvalidName, UnknownToken
from utils import iso_from_timestamp, new_token, validate_filename, validate_token


class TestValidateToken:

    def test_accepts_generated_tokens(self):
        token = new_token()
        assert validate_token(token) == token

    @pytest.mark.parametrize("token", [
        "",
        "not-a-token",
        "../" + str(uuid.uuid4())[3:],
        str(uuid.uuid4()).upper(),
        str(uuid.uuid4()) + "x",
        uuid.uuid4().hex,
    ])
    def test_rejects_malformed(self, token):
        with pytest.raises(UnknownToken):
            validate_token(token)


class TestValidateFilename:

    @pytest.mark.parametrize("name", [
        "report.pdf",
        "IMG_2041.JPG",
        "notes v2 (final).txt",
        ".hidden",
        "фото.png",
        "a" * 255,
    ])
    def test_accepts_ordinary_names(self, name):
        assert validate_filename(name) == name

    @pytest.mark.parametrize("name", [
        "",
        ".",
        "..",
        "../../etc/passwd",
        "..\\..\\boot.ini",
        "/etc/passwd",
        "dir/file.txt",
        "C:evil.txt",
        "report..pdf",
        "bad\x00name",
        "tab\tname",
        ".0f3a9c.uploading",
        "a" * 256,
    ])
    def test_rejects_unsafe_names(self, name):
        with pytest.raises(InvalidName):
            validate_filename(name)


def test_iso_from_timestamp():
    assert iso_from_timestamp(0) == "1970-01-01T00:00:00.000Z"
