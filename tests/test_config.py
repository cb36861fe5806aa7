import pytest
from pydantic import SecretStr

from ec2_quickstart.config import (
    DeploymentConfig,
    QuickstartSettings,
    collect_config,
    confirm_deployment,
    display_config,
    is_yes,
    resolve_domain,
)
from ec2_quickstart.errors import ConfigurationError


def test_is_yes_accepts_only_single_y():
    assert is_yes("y")
    assert is_yes("Y")
    assert is_yes(" y ")
    assert not is_yes("yes")
    assert not is_yes("n")
    assert not is_yes("")
    assert not is_yes(None)


def test_resolve_domain_priority():
    assert resolve_domain("verify.example.com", "env.example.com", "54.1.2.3") == "verify.example.com"
    assert resolve_domain("", "env.example.com", "54.1.2.3") == "env.example.com"
    assert resolve_domain("  ", None, "54.1.2.3") == "54.1.2.3"


def test_resolve_domain_without_any_source_raises():
    with pytest.raises(ConfigurationError):
        resolve_domain("", None, None)


def test_collect_config_domain_with_ssl_and_default_password(answers):
    answers("verify.example.com", "y", None)
    cfg = collect_config(QuickstartSettings(), public_ip="54.1.2.3")

    assert cfg.domain == "verify.example.com"
    assert cfg.ssl_enabled is True
    assert cfg.ssl_answer == "Y"
    assert cfg.db_password.get_secret_value() == "postgres"


def test_collect_config_falls_back_to_public_ip(answers):
    prompts = answers("", "n", "s3cret")
    cfg = collect_config(QuickstartSettings(), public_ip="54.1.2.3")

    assert cfg.domain == "54.1.2.3"
    assert cfg.ssl_enabled is False
    assert cfg.ssl_answer == "n"
    assert cfg.host == "54.1.2.3"
    assert cfg.db_password.get_secret_value() == "s3cret"
    assert "54.1.2.3" in prompts.questions[0]


def test_collect_config_uses_environment_domain(answers, monkeypatch):
    monkeypatch.setenv("QUICKSTART_DOMAIN", "env.example.com")
    monkeypatch.setenv("QUICKSTART_DB_PASSWORD", "from-env")
    answers("", None, None)
    cfg = collect_config(QuickstartSettings(), public_ip=None)

    assert cfg.domain == "env.example.com"
    assert cfg.ssl_enabled is False
    assert cfg.db_password.get_secret_value() == "from-env"


def test_collect_config_without_domain_or_ip_raises(answers):
    answers("")
    with pytest.raises(ConfigurationError):
        collect_config(QuickstartSettings(), public_ip=None)


def test_confirm_deployment(answers):
    answers("n")
    assert confirm_deployment() is False
    answers(None)
    assert confirm_deployment() is True


def test_display_config_masks_password(caplog):
    caplog.set_level("INFO", logger="ec2_quickstart")
    cfg = DeploymentConfig(domain="54.1.2.3", ssl_enabled=False, db_password=SecretStr("hunter2"))
    display_config(cfg)

    assert "hunter2" not in caplog.text
    assert "********" in caplog.text
    assert "SSL Enabled: n" in caplog.text


def test_settings_validate_readiness_attempts(monkeypatch):
    monkeypatch.setenv("QUICKSTART_READINESS_ATTEMPTS", "3")
    assert QuickstartSettings().readiness_attempts == 3

    monkeypatch.setenv("QUICKSTART_READINESS_ATTEMPTS", "0")
    with pytest.raises(ValueError):
        QuickstartSettings()
