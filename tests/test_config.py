from pathlib import Path

from solplan.config import Settings
from solplan.utils.prompts import load_prompt_template


def test_defaults(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    settings = Settings()

    assert settings.gemini_api_key is None
    assert settings.port == 3000
    assert settings.lite_cache_ttl_seconds == 300
    assert settings.pro_cache_ttl_seconds == 60
    assert str(settings.token_list_url).startswith("https://token.jup.ag/")


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "   ")
    monkeypatch.setenv("RATE_LIMIT_PER_IP_PER_MIN", "5")
    monkeypatch.setenv("PORT", "8080")

    settings = Settings()

    assert settings.gemini_api_key is None
    assert settings.rate_limit_per_ip_per_min == 5
    assert settings.port == 8080


def test_prompt_template_loading(tmp_path: Path):
    prompt_file = tmp_path / "extractor.txt"
    prompt_file.write_text("  Return JSON only.  \n", encoding="utf-8")

    assert load_prompt_template(prompt_file) == "Return JSON only."
    assert load_prompt_template(tmp_path / "missing.txt") is None
    assert load_prompt_template(None) is None
