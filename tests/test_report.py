from pydantic import SecretStr

from ec2_quickstart import report
from ec2_quickstart.config import DeploymentConfig
from ec2_quickstart.report import AccessInfo, build_access_info, collect_access_info, query_node_port, render_summary


def _cfg(domain, ssl, public_ip=None):
    return DeploymentConfig(domain=domain, ssl_enabled=ssl, db_password=SecretStr("postgres"), public_ip=public_ip)


def test_ssl_urls_use_domain_without_port():
    info = build_access_info(_cfg("verify.example.com", True), "30080", "30081")
    assert info.ui_url == "https://verify.example.com"
    assert info.api_url == "https://verify.example.com/v1/verify"


def test_http_urls_use_public_ip_and_node_ports():
    info = build_access_info(_cfg("54.1.2.3", False, public_ip="54.1.2.3"), "30080", "30081")
    assert info.ui_url == "http://54.1.2.3:30080"
    assert info.api_url == "http://54.1.2.3:30081/v1/verify"


def test_http_urls_prefer_public_ip_over_domain():
    info = build_access_info(_cfg("verify.example.com", False, public_ip="54.1.2.3"), "30080", "30081")
    assert info.ui_url.startswith("http://54.1.2.3:")


def test_query_node_port(monkeypatch):
    calls = []

    def fake(args, timeout=30):
        calls.append(args)
        return True, "31234", ""

    monkeypatch.setattr(report, "run_kubectl", fake)
    assert query_node_port("verify-ui") == "31234"
    assert calls[0][:5] == ["get", "svc", "-n", "injiverify", "verify-ui"]


def test_query_node_port_missing_service(monkeypatch):
    monkeypatch.setattr(report, "run_kubectl", lambda args, timeout=30: (False, "", "NotFound"))
    assert query_node_port("verify-ui") == "N/A"


def test_collect_access_info_with_unknown_ports(monkeypatch):
    monkeypatch.setattr(report, "run_kubectl", lambda args, timeout=30: (False, "", ""))
    info = collect_access_info(_cfg("54.1.2.3", False, public_ip="54.1.2.3"))
    assert info.ui_url == "http://54.1.2.3:N/A"
    assert not info.ports_known


def test_summary_shows_security_group_warning_only_with_known_ports(caplog, tmp_path):
    caplog.set_level("INFO", logger="ec2_quickstart")
    cfg = _cfg("54.1.2.3", False, public_ip="54.1.2.3")

    render_summary(cfg, AccessInfo("http://54.1.2.3:N/A", "http://54.1.2.3:N/A/v1/verify", "N/A", "N/A"),
                   tmp_path, None)
    assert "SECURITY GROUP" not in caplog.text

    caplog.clear()
    render_summary(cfg, build_access_info(cfg, "30080", "30081"), tmp_path, tmp_path / "deploy.log")
    assert "SECURITY GROUP" in caplog.text
    assert "30081 (verify-service)" in caplog.text
    assert "deploy.log" in caplog.text


def test_run_verification_reports_health(monkeypatch):
    seen = []

    def fake(args, timeout=30):
        seen.append(args)
        return args[0] == "exec", "", ""

    monkeypatch.setattr(report, "run_kubectl", fake)
    assert report.run_verification(settle_seconds=0) is True
    assert any(a[:3] == ["get", "ingress", "-n"] for a in seen)

    monkeypatch.setattr(report, "run_kubectl", lambda args, timeout=30: (False, "", ""))
    assert report.run_verification(settle_seconds=0) is False
