"""Deployment platform configuration tests."""

from furlink.core.config import PLATFORM_BASE_URLS, Settings


def test_platform_default_base_urls():
    assert Settings(deploy_platform="zeabur").base_url == PLATFORM_BASE_URLS["zeabur"]
    assert Settings(deploy_platform="zion").base_url == "https://api.zion.com"
    assert Settings(deploy_platform="local").base_url == "http://localhost:8000"


def test_public_base_url_overrides_platform():
    s = Settings(deploy_platform="zeabur", public_base_url="https://pets.example.org")
    assert s.base_url == "https://pets.example.org"
