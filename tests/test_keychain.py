# tests/test_keychain.py
from keyring.backend import KeyringBackend
from keyring.errors import KeyringError

from sealkey.core.keychain import KeyringKeychain, NullKeychain, select_keychain


class MemoryKeyring(KeyringBackend):
    priority = 1

    def __init__(self):
        super().__init__()
        self.data = {}

    def get_password(self, service, username):
        return self.data.get((service, username))

    def set_password(self, service, username, password):
        self.data[(service, username)] = password

    def delete_password(self, service, username):
        self.data.pop((service, username), None)


class UnusableKeyring(MemoryKeyring):
    priority = 0


class BrokenKeyring(MemoryKeyring):
    def get_password(self, service, username):
        raise KeyringError("locked")


def test_null_keychain():
    kc = NullKeychain()
    assert kc.available() is False
    kc.store("main", "value")
    assert kc.fetch("main") is None


def test_keyring_store_and_fetch():
    backend = MemoryKeyring()
    kc = KeyringKeychain("sealkey-test", backend)
    assert kc.available()
    kc.store("main", "the-key")
    assert kc.fetch("main") == "the-key"
    assert backend.data[("sealkey-test", "main")] == "the-key"
    assert kc.fetch("other") is None


def test_empty_keyring_value_is_absent():
    backend = MemoryKeyring()
    backend.set_password("sealkey", "main", "")
    assert KeyringKeychain(backend=backend).fetch("main") is None


def test_keyring_errors_are_reported_as_absence():
    assert KeyringKeychain(backend=BrokenKeyring()).fetch("main") is None


def test_select_keychain():
    assert isinstance(select_keychain("sealkey", MemoryKeyring()), KeyringKeychain)
    assert isinstance(select_keychain("sealkey", UnusableKeyring()), NullKeychain)
