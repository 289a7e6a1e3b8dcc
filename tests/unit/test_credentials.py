import pytest

from agentflow.credentials import (
    ChainedCredentialStore,
    EnvCredentialStore,
    InMemoryCredentialStore,
    validate_key,
)


def test_env_store_prefers_prefixed_variable():
    store = EnvCredentialStore(
        env={"AGENTFLOW_OPENAI_API_KEY": "sk-prefixed", "OPENAI_API_KEY": "sk-plain"}
    )
    assert store.get_credential("openai") == "sk-prefixed"


def test_env_store_falls_back_to_well_known_names():
    store = EnvCredentialStore(env={"RESEND_API_KEY": " re_abc "})
    assert store.get_credential("resend") == "re_abc"
    assert store.get_credential("sendgrid") is None


def test_env_store_reads_process_environment(monkeypatch):
    monkeypatch.setenv("AGENTFLOW_MAILGUN_API_KEY", "key-from-env")
    assert EnvCredentialStore().get_credential("mailgun") == "key-from-env"


def test_in_memory_store_roundtrip():
    store = InMemoryCredentialStore({"OpenAI": "sk-" + "x" * 30})

    assert store.has_key("openai")
    assert store.list_services() == ["openai"]
    store.remove_key("openai")
    assert store.get_credential("openai") is None


def test_in_memory_store_rejects_empty_keys():
    with pytest.raises(ValueError):
        InMemoryCredentialStore().store_key("resend", "  ")


def test_chained_store_returns_first_hit():
    first = InMemoryCredentialStore({"resend": "re_first_key"})
    second = InMemoryCredentialStore({"resend": "re_second", "sendgrid": "SG.second"})
    store = ChainedCredentialStore(first, second)

    assert store.get_credential("resend") == "re_first_key"
    assert store.get_credential("sendgrid") == "SG.second"
    assert store.get_credential("mailgun") is None


@pytest.mark.parametrize(
    "service, key, expected",
    [
        ("openai", "sk-" + "a" * 40, True),
        ("openai", "pk-" + "a" * 40, False),
        ("sendgrid", "SG." + "a" * 60, True),
        ("sendgrid", "SG.short", False),
        ("resend", "re_" + "a" * 30, True),
        ("mailgun", "key-" + "a" * 30, True),
        ("somethingelse", "anything", True),
    ],
)
def test_validate_key(service, key, expected):
    assert validate_key(service, key) is expected
