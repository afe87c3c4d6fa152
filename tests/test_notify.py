"""Tests for operator email notifications."""

from __future__ import annotations

import subprocess
from email import message_from_bytes
from unittest.mock import patch

from tv_control.common.notify import (
    EmailNotifier,
    render_ssmtp_conf,
    send_verification_email,
    write_ssmtp_conf,
)


def sent_message(mock_run):
    return message_from_bytes(mock_run.call_args.kwargs["input"])


class TestEmailNotifier:
    """Test failure notifications."""

    def test_subject_carries_device_name_and_id(self, device_config):
        notifier = EmailNotifier(device_config)
        assert notifier.subject == (
            "[Living Room - 0190b6a2-7c1e-7d3a-9f00-123456789abc] TV Control Error"
        )

    @patch("tv_control.common.notify.subprocess.run")
    def test_notify_pipes_message_to_ssmtp(self, mock_run, device_config):
        mock_run.return_value = subprocess.CompletedProcess([], 0, stdout=b"", stderr=b"")

        assert EmailNotifier(device_config).notify("TV failed to turn ON!") is True

        assert mock_run.call_args[0][0] == ["ssmtp", "operator@example.com"]
        message = sent_message(mock_run)
        assert message["From"] == "sender@example.com"
        assert message["To"] == "operator@example.com"
        assert "Living Room" in message["Subject"]
        assert message.get_payload(decode=True).decode().strip() == "TV failed to turn ON!"

    @patch("tv_control.common.notify.subprocess.run")
    def test_transport_failure_is_reported_not_raised(self, mock_run, device_config):
        mock_run.return_value = subprocess.CompletedProcess([], 1, stdout=b"", stderr=b"auth failed")
        assert EmailNotifier(device_config).notify("Failed to download video!") is False

    @patch("tv_control.common.notify.subprocess.run", side_effect=FileNotFoundError("ssmtp"))
    def test_missing_transport(self, mock_run, device_config):
        assert EmailNotifier(device_config).notify("Failed to download video!") is False

    @patch("tv_control.common.notify.subprocess.run", side_effect=subprocess.TimeoutExpired("ssmtp", 60))
    def test_transport_timeout(self, mock_run, device_config):
        assert EmailNotifier(device_config).notify("Failed to download video!") is False

    @patch("tv_control.common.notify.subprocess.run", side_effect=PermissionError("ssmtp"))
    def test_transport_not_executable(self, mock_run, device_config):
        assert EmailNotifier(device_config).notify("Failed to download video!") is False


class TestVerificationEmail:
    """Test the installer's test message and ssmtp setup."""

    @patch("tv_control.common.notify.subprocess.run")
    def test_verification_subject_is_tagged(self, mock_run):
        mock_run.return_value = subprocess.CompletedProcess([], 0, stdout=b"", stderr=b"")

        assert send_verification_email("a@example.com", "b@example.com", "tag-1") is True
        assert sent_message(mock_run)["Subject"] == "[tag-1] Email Verification"

    def test_render_ssmtp_conf(self):
        conf = render_ssmtp_conf("sender@gmail.com", "app-pass", hostname="signage-01")
        lines = conf.splitlines()
        assert "mailhub=smtp.gmail.com:587" in lines
        assert "AuthUser=sender@gmail.com" in lines
        assert "AuthPass=app-pass" in lines
        assert "UseSTARTTLS=YES" in lines
        assert "hostname=signage-01" in lines

    @patch("tv_control.common.notify.os.geteuid", return_value=0)
    @patch("tv_control.common.notify.subprocess.run")
    def test_write_ssmtp_conf_restricts_permissions(self, mock_run, mock_euid, tmp_path):
        mock_run.return_value = subprocess.CompletedProcess([], 0, stdout="", stderr="")
        conf_path = tmp_path / "ssmtp.conf"

        assert write_ssmtp_conf("sender@gmail.com", "app-pass", conf_path) is True

        tee_call, chmod_call = mock_run.call_args_list
        assert tee_call[0][0] == ["tee", str(conf_path)]
        assert "AuthPass=app-pass" in tee_call.kwargs["input"]
        assert chmod_call[0][0] == ["chmod", "600", str(conf_path)]

    @patch("tv_control.common.notify.os.geteuid", return_value=1000)
    @patch("tv_control.common.notify.subprocess.run")
    def test_write_ssmtp_conf_uses_sudo(self, mock_run, mock_euid, tmp_path):
        mock_run.return_value = subprocess.CompletedProcess([], 0, stdout="", stderr="")
        write_ssmtp_conf("sender@gmail.com", "app-pass", tmp_path / "ssmtp.conf")
        assert mock_run.call_args_list[0][0][0][0] == "sudo"

    @patch("tv_control.common.notify.os.geteuid", return_value=0)
    @patch("tv_control.common.notify.subprocess.run")
    def test_write_ssmtp_conf_failure(self, mock_run, mock_euid, tmp_path):
        mock_run.return_value = subprocess.CompletedProcess([], 1, stdout="", stderr="denied")
        assert write_ssmtp_conf("sender@gmail.com", "app-pass", tmp_path / "ssmtp.conf") is False
