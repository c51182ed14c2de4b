from __future__ import annotations

from app.web import render_admin_login
from conftest import build_settings


def test_placeholder_text_in_values_is_left_alone() -> None:
    settings = build_settings(APP_NAME="Shelf __BODY__ __NAV__")

    html = render_admin_login(settings, error="Try __TITLE__ again")

    assert "<title>Sign in · Shelf __BODY__ __NAV__</title>" in html
    assert "Try __TITLE__ again" in html
    assert html.count("Administrator sign in") == 1
    assert html.count('href="/admin/login"') == 1
