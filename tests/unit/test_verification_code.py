"""Unit tests for certificate verification codes and the placeholder renderer."""

import re
from datetime import datetime, timezone

import pytest

from dna_community.workshops.certificates import (
    CertificateData,
    PlaceholderCertificateRenderer,
    generate_verification_code,
    to_base36,
)

CODE_PATTERN = re.compile(r"^DNA-[0-9a-z]+-[0-9A-Z]{8}$")


class TestBase36:
    @pytest.mark.parametrize(("value", "expected"), [(0, "0"), (35, "z"), (36, "10"), (1295, "zz")])
    def test_known_values(self, value: int, expected: str) -> None:
        assert to_base36(value) == expected

    def test_matches_int_parsing(self) -> None:
        ms = 1_760_000_000_000
        assert int(to_base36(ms), 36) == ms


class TestVerificationCode:
    def test_format(self) -> None:
        assert CODE_PATTERN.match(generate_verification_code())

    def test_timestamp_segment(self) -> None:
        code = generate_verification_code(now_ms=1_760_000_000_000)
        assert code.split("-")[1] == to_base36(1_760_000_000_000)

    def test_codes_differ(self) -> None:
        codes = {generate_verification_code(now_ms=1) for _ in range(50)}
        assert len(codes) == 50


class TestPlaceholderRenderer:
    @pytest.mark.asyncio
    async def test_url_layout(self) -> None:
        renderer = PlaceholderCertificateRenderer("https://files.example.com/certs/")
        url = await renderer.render(CertificateData(
            workshop_id="w1",
            workshop_title="Intro",
            user_id="u1",
            user_name="Ana",
            completed_at=datetime.now(timezone.utc),
            verification_code="DNA-abc-ABCDEFGH",
        ))
        assert re.match(r"^https://files\.example\.com/certs/certificate_u1_w1_\d+\.pdf$", url)
