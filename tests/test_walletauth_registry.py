"""Tests for walletauth.registry: auth-config store and wallet ownership registry."""

from __future__ import annotations

import secrets
import threading

import pytest

from walletauth.keys import KeyEncoding, generate_keypair, token_to_pem
from walletauth.registry import (
    AuthConfig,
    InMemoryAuthConfigStore,
    WalletOwnershipRecord,
    WalletOwnershipRegistry,
)
from walletauth.service_errors import KeyFormatError, NotFoundError


def _config(wallet_id: str = "w1", address: str = "0xAbC", token: str | None = None) -> AuthConfig:
    return AuthConfig(
        wallet_id=wallet_id,
        wallet_address=address,
        key_quorum_id=f"kq-{wallet_id}",
        private_key_token=token or generate_keypair().private_key_token,
    )


class TestInMemoryAuthConfigStore:
    def test_save_and_get(self):
        store = InMemoryAuthConfigStore()
        config = _config()
        store.save(config)
        loaded = store.get("w1")
        assert loaded is not None
        assert loaded.private_key_token == config.private_key_token
        assert loaded.key_quorum_id == "kq-w1"

    def test_get_missing(self):
        assert InMemoryAuthConfigStore().get("nope") is None

    def test_public_key_derived_when_missing(self):
        key = generate_keypair()
        saved = InMemoryAuthConfigStore().save(_config(token=key.private_key_token))
        assert saved.public_key_pem == key.public_key_pem

    def test_rejects_unusable_key(self):
        with pytest.raises(KeyFormatError):
            InMemoryAuthConfigStore().save(_config(token="wallet-auth:AAAA"))

    def test_accepts_sec1_token(self):
        key = generate_keypair(KeyEncoding.SEC1)
        store = InMemoryAuthConfigStore()
        store.save(_config(token=key.private_key_token))
        assert token_to_pem(store.get("w1").private_key_token, KeyEncoding.SEC1) == key.private_key_pem

    def test_encrypted_at_rest_with_master_key(self):
        store = InMemoryAuthConfigStore(master_key=secrets.token_bytes(32))
        config = _config()
        store.save(config)
        sealed = store._configs["w1"]
        assert config.private_key_token.encode() not in sealed.sealed_token
        assert sealed.config.private_key_token != config.private_key_token
        assert store.get("w1").private_key_token == config.private_key_token

    def test_get_by_address_case_insensitive(self):
        store = InMemoryAuthConfigStore()
        store.save(_config(address="0xAbCdEf"))
        assert store.get_by_address("0xabcdef").wallet_id == "w1"
        assert store.get_by_address("0x000") is None

    def test_delete(self):
        store = InMemoryAuthConfigStore()
        store.save(_config())
        store.delete("w1")
        assert store.get("w1") is None
        with pytest.raises(NotFoundError):
            store.delete("w1")

    def test_list_restore_clear(self):
        store = InMemoryAuthConfigStore()
        assert store.restore([_config("w1"), _config("w2")]) == 2
        assert sorted(c.wallet_id for c in store.list()) == ["w1", "w2"]
        store.clear()
        assert store.list() == []

    def test_restore_is_all_or_nothing(self):
        store = InMemoryAuthConfigStore()
        bad = _config("w2").model_copy(update={"private_key_token": "wallet-auth:AAAA"})
        with pytest.raises(KeyFormatError):
            store.restore([_config("w1"), bad, _config("w3")])
        assert store.list() == []

    @pytest.mark.parametrize("master_key", [None, secrets.token_bytes(32)])
    def test_rotate_key(self, master_key):
        store = InMemoryAuthConfigStore(master_key=master_key)
        original = store.save(_config())
        replacement = generate_keypair()
        old, new = store.rotate_key("w1", replacement.private_key_token, key_quorum_id="kq-new")
        assert old.private_key_token == original.private_key_token
        assert old.key_quorum_id == "kq-w1"
        assert new.private_key_token == replacement.private_key_token
        assert new.public_key_pem == replacement.public_key_pem
        assert new.key_quorum_id == "kq-new"
        assert new.wallet_address == original.wallet_address
        assert store.get("w1") == new

    def test_rotate_key_missing_wallet(self):
        with pytest.raises(NotFoundError):
            InMemoryAuthConfigStore().rotate_key("nope", generate_keypair().private_key_token)

    def test_rotate_key_rejects_bad_key_and_keeps_old(self):
        store = InMemoryAuthConfigStore()
        original = store.save(_config())
        with pytest.raises(KeyFormatError):
            store.rotate_key("w1", "wallet-auth:AAAA")
        assert store.get("w1").private_key_token == original.private_key_token

    def test_save_replaces(self):
        store = InMemoryAuthConfigStore()
        store.save(_config())
        replacement = _config()
        store.save(replacement)
        assert store.get("w1").private_key_token == replacement.private_key_token
        assert len(store.list()) == 1

    def test_private_key_not_in_repr(self):
        config = _config()
        assert config.private_key_token not in repr(config)

    def test_concurrent_saves(self):
        store = InMemoryAuthConfigStore()
        token = generate_keypair().private_key_token
        threads = [
            threading.Thread(target=store.save, args=(_config(f"w{i}", token=token),)) for i in range(20)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(store.list()) == 20


class TestWalletOwnershipRegistry:
    def _record(self, wallet_id: str, creator: str) -> WalletOwnershipRecord:
        return WalletOwnershipRecord(
            wallet_id=wallet_id, wallet_address=f"0x{wallet_id}", creator_address=creator, agent_id="agent"
        )

    def test_register_and_get(self):
        registry = WalletOwnershipRegistry()
        registry.register(self._record("w1", "0xCreator"))
        assert registry.get("w1").creator_address == "0xCreator"
        assert registry.get("w2") is None

    def test_wallets_by_creator(self):
        registry = WalletOwnershipRegistry()
        registry.register(self._record("w1", "0xAA"))
        registry.register(self._record("w2", "0xaa"))
        registry.register(self._record("w3", "0xBB"))
        assert sorted(r.wallet_id for r in registry.wallets_by_creator("0xAa")) == ["w1", "w2"]
        assert len(registry.list()) == 3

    def test_is_owned_by(self):
        registry = WalletOwnershipRegistry()
        registry.register(self._record("w1", "0xAA"))
        assert registry.is_owned_by("w1", "0xaa")
        assert not registry.is_owned_by("w1", "0xBB")
        assert not registry.is_owned_by("missing", "0xAA")
