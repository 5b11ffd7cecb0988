import json

import pytest

from conftest import make_record
from pmo_saver.property_store import PropertyStore
from pmo_saver.selection_store import AttachmentSelectionStore
from scripts import save_attachments


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    db = tmp_path / "cli.db"
    monkeypatch.setenv("PMO_STORE_DB", str(db))
    monkeypatch.setenv("PMO_USER", "pm@example.com")
    monkeypatch.setenv("PMO_DEFAULT_WEBHOOK_URL", "https://pmo.example.invalid/hook")
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    return PropertyStore(db, "pm@example.com")


class _StubGmail:
    def __init__(self, records):
        self.records = records

    def get_thread_attachments(self, thread_id):
        return self.records


@pytest.fixture
def stub_google(monkeypatch):
    records = [make_record("a.pdf", 2048, 0), make_record("b.txt", 10, 1)]
    monkeypatch.setattr(save_attachments, "load_credentials", lambda settings: object())
    monkeypatch.setattr(save_attachments.GmailClient, "from_credentials", classmethod(lambda cls, creds: _StubGmail(records)))
    monkeypatch.setattr(save_attachments.DriveFolderStore, "from_credentials", classmethod(lambda cls, creds: object()))
    return records


def test_configure_persists_settings(cli_env, capsys):
    code = save_attachments.main(
        ["configure", "--jira-url", "https://jira.example.invalid", "--jira-token", "secret-token-99", "--retries", "3"]
    )

    assert code == 0
    blob = json.loads(cli_env.get("JIRA_SETTINGS"))
    assert blob["pmoWebhookUrl"] == "https://pmo.example.invalid/hook"
    assert blob["pmoRetryAttempts"] == 3
    assert "PMO webhook: Default" in capsys.readouterr().out


def test_configure_rejects_invalid_settings(cli_env, capsys):
    code = save_attachments.main(["configure", "--jira-url", "https://jira", "--jira-token", "t", "--timeout-ms", "100"])

    assert code == 2
    assert cli_env.get("JIRA_SETTINGS") is None
    assert "between 5000 and 60000" in capsys.readouterr().out


def test_show_settings_masks_token(cli_env, capsys):
    save_attachments.main(["configure", "--jira-url", "https://jira", "--jira-token", "secret-token-99"])
    capsys.readouterr()

    save_attachments.main(["show-settings"])

    out = capsys.readouterr().out
    assert "secr****n-99" in out
    assert "secret-token-99" not in out


def test_tickets_requires_jira_settings(cli_env, capsys):
    assert save_attachments.main(["tickets"]) == 2
    assert "save your Jira settings first" in capsys.readouterr().out


def test_select_then_list_attachments(cli_env, stub_google, capsys):
    assert save_attachments.main(["select", "--thread", "t1", "--index", "1"]) == 0
    capsys.readouterr()

    assert save_attachments.main(["attachments", "--thread", "t1"]) == 0

    lines = capsys.readouterr().out.splitlines()
    assert lines == ["[ ] 0: a.pdf (2 KB)", "[x] 1: b.txt (10 B)"]


def test_forget_one_thread_keeps_the_others(cli_env, capsys):
    selections = AttachmentSelectionStore(cli_env)
    selections.store_selections("t1", {"a.pdf_0": True})
    selections.store_selections("t2", {"b.txt_1": True})

    assert save_attachments.main(["forget", "--thread", "t1"]) == 0

    assert selections.load_selections("t1") is None
    assert selections.load_selections("t2") == {"b.txt_1": True}
    assert "Forgot selections for 1 thread(s)" in capsys.readouterr().out


def test_forget_all_leaves_settings_alone(cli_env, capsys):
    save_attachments.main(["configure", "--jira-url", "https://jira", "--jira-token", "secret-token-99"])
    selections = AttachmentSelectionStore(cli_env)
    selections.store_selections("t1", {"a.pdf_0": True})
    selections.store_selections("t_2", {"b.txt_1": False})
    capsys.readouterr()

    assert save_attachments.main(["forget", "--all"]) == 0

    assert selections.thread_ids() == []
    assert cli_env.get("JIRA_SETTINGS") is not None
    assert "Forgot selections for 2 thread(s)" in capsys.readouterr().out
