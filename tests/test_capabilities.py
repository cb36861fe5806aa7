import os
from pathlib import Path

import pytest

from ec2_quickstart import capabilities
from ec2_quickstart.config import QuickstartSettings
from ec2_quickstart.errors import ExternalCommandFailure, ReadinessTimeout
from ec2_quickstart.steps import StepOutcome, ensure_capability


class Recorder:
    def __init__(self):
        self.calls = []

    def __getattr__(self, program):
        def run(*args, **kwargs):
            self.calls.append((program, args))
        return run

    def Command(self, shell):
        return lambda *args, **kwargs: self.calls.append((shell, args))


def test_persist_kubeconfig_export_is_idempotent(tmp_path):
    bashrc = tmp_path / ".bashrc"
    bashrc.write_text("alias ll='ls -l'\n")

    capabilities._persist_kubeconfig_export(Path("/home/ubuntu/.kube/config"), bashrc)
    capabilities._persist_kubeconfig_export(Path("/home/ubuntu/.kube/config"), bashrc)

    assert bashrc.read_text().count("export KUBECONFIG=/home/ubuntu/.kube/config") == 1


def test_setup_kubeconfig(monkeypatch, tmp_path):
    fake = Recorder()
    monkeypatch.setattr(capabilities, "sh", fake)
    monkeypatch.setattr(capabilities.getpass, "getuser", lambda: "ubuntu")
    monkeypatch.setenv("HOME", str(tmp_path))
    kubeconfig = tmp_path / ".kube" / "config"

    capabilities.setup_kubeconfig(kubeconfig)

    assert ("sudo", ("cp", "/etc/rancher/k3s/k3s.yaml", str(kubeconfig))) in fake.calls
    assert ("sudo", ("chown", "ubuntu:ubuntu", str(kubeconfig))) in fake.calls
    assert os.environ["KUBECONFIG"] == str(kubeconfig)
    assert "KUBECONFIG" in (tmp_path / ".bashrc").read_text()


def test_run_installer_downloads_and_removes_script(monkeypatch):
    fake = Recorder()
    monkeypatch.setattr(capabilities, "sh", fake)
    monkeypatch.setattr(capabilities, "download_script", lambda url: "echo installing\n")

    capabilities._run_installer("https://get.k3s.io", "sh")

    shell, args = fake.calls[0]
    assert shell == "sh"
    assert not Path(args[0]).exists()


def test_present_k3s_is_not_reinstalled(monkeypatch):
    monkeypatch.setattr(capabilities, "command_exists", lambda cmd: cmd == "k3s")
    monkeypatch.setattr(capabilities, "install_k3s", lambda settings: pytest.fail("reinstalled k3s"))

    assert ensure_capability(capabilities.k3s_capability(QuickstartSettings())) is StepOutcome.ALREADY_SATISFIED


def test_install_k3s_waits_for_node(monkeypatch):
    steps = []
    monkeypatch.setattr(capabilities, "_run_installer", lambda url, shell, sudo=False: steps.append(url))
    monkeypatch.setattr(capabilities, "setup_kubeconfig", lambda path: steps.append("kubeconfig"))
    monkeypatch.setattr(capabilities, "ensure_kubectl_link", lambda: steps.append("link"))
    monkeypatch.setattr(capabilities, "wait_for_ready", lambda target: steps.append(target) or StepOutcome.NEWLY_SATISFIED)

    capabilities.install_k3s(QuickstartSettings())

    assert steps[:3] == ["https://get.k3s.io", "kubeconfig", "link"]
    target = steps[3]
    assert target.kind == "nodes"
    assert target.fatal


def test_k3s_node_timeout_aborts(monkeypatch):
    installed = {"k3s": False}

    def timeout(target):
        raise ReadinessTimeout(target.name, target.timeout, target.attempts)

    monkeypatch.setattr(capabilities, "command_exists", lambda cmd: installed.get(cmd, False))
    monkeypatch.setattr(capabilities, "_run_installer", lambda url, shell, sudo=False: installed.update(k3s=True))
    monkeypatch.setattr(capabilities, "setup_kubeconfig", lambda path: None)
    monkeypatch.setattr(capabilities, "ensure_kubectl_link", lambda: None)
    monkeypatch.setattr(capabilities, "wait_for_ready", timeout)

    with pytest.raises(ReadinessTimeout):
        ensure_capability(capabilities.k3s_capability(QuickstartSettings()))


def test_failed_apt_install_is_fatal(monkeypatch):
    import sh

    def apt_fails(package):
        raise sh.ErrorReturnCode_100("apt install -y openjdk-21-jdk", b"", b"E: dpkg was interrupted\n")

    monkeypatch.setattr(capabilities, "command_exists", lambda cmd: False)
    monkeypatch.setattr(capabilities, "apt_install", apt_fails)

    with pytest.raises(ExternalCommandFailure) as exc:
        ensure_capability(capabilities.java_capability())
    assert exc.value.step == "Java"
    assert "exit code 100" in exc.value.detail
