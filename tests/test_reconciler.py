"""Tests for reconciler.py module."""

import threading

import pytest

import factories
from fakes import FakeStore
from seed_extensions.exceptions import (
    InstallationDeletionPendingError,
    MissingExtensionControllerError,
    ReconcileCancelledError,
)
from seed_extensions.hashing import REGISTRATION_SPEC_HASH_LABEL, SEED_SPEC_HASH_LABEL, short_hash
from seed_extensions.models import ExtensionId
from seed_extensions.reconciler import SeedReconciler


def _no_shoot_requirements(shoot, seed, registrations, internal_domain, external_domain, use_dns_records):
    return set()


def _reconciler(store, config, shoot_requirements=_no_shoot_requirements):
    return SeedReconciler(store, config, shoot_requirements=shoot_requirements)


class TestMissingSeed:
    """Tests for seeds that no longer exist."""

    def test_missing_seed_is_a_no_op(self, config):
        """Test a vanished seed yields an empty result without writes."""
        store = FakeStore(registrations=[factories.registration("a", policy="Always")])

        result = _reconciler(store, config).reconcile("gone")

        assert result.wanted == frozenset()
        assert result.writes == 0
        assert store.writes == 0


class TestRequiredExtensions:
    """Tests for installing controllers of required extensions."""

    def test_bucket_installs_provider(self, config):
        """Test a backup bucket on the seed installs its provider."""
        seed = factories.seed("seed-1")
        registration = factories.registration("provider-aws", "BackupBucket/aws", "BackupEntry/aws")
        store = FakeStore(
            seeds=[seed],
            registrations=[registration],
            buckets=[factories.bucket("bucket-1", "aws", seed="seed-1")],
        )

        result = _reconciler(store, config).reconcile("seed-1")

        assert result.created == ["provider-aws"]
        installation = store.installations_for("provider-aws")[0]
        assert installation["spec"]["seedRef"] == {"name": "seed-1", "resourceVersion": "1"}
        assert installation["metadata"]["labels"][SEED_SPEC_HASH_LABEL] == short_hash(seed["spec"])
        assert installation["metadata"]["labels"][REGISTRATION_SPEC_HASH_LABEL] == short_hash(registration["spec"])

    def test_missing_extension_controller(self, config):
        """Test an entry referencing a bucket of another seed needs a controller."""
        store = FakeStore(
            seeds=[factories.seed("seed-1")],
            buckets=[factories.bucket("bucket-1", "aws", seed="seed-2")],
            entries=[factories.entry("entry-1", "bucket-1", seed="seed-1")],
        )

        with pytest.raises(MissingExtensionControllerError, match="BackupEntry/aws"):
            _reconciler(store, config).reconcile("seed-1")

        assert store.writes == 0

    def test_seed_dns_provider(self, config):
        """Test the seed's own DNS provider requires a DNSRecord controller."""
        store = FakeStore(
            seeds=[factories.seed("seed-1", dns_provider="aws-route53")],
            registrations=[factories.registration("provider-aws", "DNSRecord/aws-route53")],
        )

        result = _reconciler(store, config).reconcile("seed-1")

        assert result.wanted == frozenset({"provider-aws"})

    def test_shoot_requirements_are_merged(self, config):
        """Test the requirements of every shoot on the seed are resolved."""
        calls = []

        def shoot_requirements(shoot, seed, registrations, internal_domain, external_domain, use_dns_records):
            calls.append(shoot.key)
            return {ExtensionId("Infrastructure", shoot.provider_type)}

        store = FakeStore(
            seeds=[factories.seed("seed-1")],
            registrations=[
                factories.registration("provider-aws", "Infrastructure/aws"),
                factories.registration("provider-gcp", "Infrastructure/gcp"),
            ],
            shoots=[
                factories.shoot("a", seed="seed-1", provider="aws"),
                factories.shoot("b", seed="seed-2", status_seed="seed-1", provider="gcp"),
            ],
        )

        result = _reconciler(store, config, shoot_requirements).reconcile("seed-1")

        assert sorted(calls) == ["garden-dev/a", "garden-dev/b"]
        assert result.wanted == frozenset({"provider-aws", "provider-gcp"})


class TestPolicies:
    """Tests for deployment policies."""

    def test_always_on_deleting_seed(self, config):
        """Test Always registrations are not installed on a seed in deletion."""
        store = FakeStore(
            seeds=[factories.seed("seed-1", deleting=True)],
            registrations=[factories.registration("networking-calico", policy="Always")],
        )

        result = _reconciler(store, config).reconcile("seed-1")

        assert result.wanted == frozenset()
        assert store.writes == 0

    def test_always_except_no_shoots_without_shoots(self, config):
        """Test the registration is not installed on an empty seed."""
        store = FakeStore(
            seeds=[factories.seed("seed-1")],
            registrations=[factories.registration("dns-service", policy="AlwaysExceptNoShoots")],
        )

        result = _reconciler(store, config).reconcile("seed-1")

        assert result.wanted == frozenset()

    def test_always_except_no_shoots_with_shoot(self, config):
        """Test the registration is installed once a shoot exists."""
        store = FakeStore(
            seeds=[factories.seed("seed-1")],
            registrations=[factories.registration("dns-service", policy="AlwaysExceptNoShoots")],
            shoots=[factories.shoot("a", seed="seed-1")],
        )

        result = _reconciler(store, config).reconcile("seed-1")

        assert result.created == ["dns-service"]

    def test_selector_mismatch(self, config):
        """Test a registration excluded by its seed selector is not installed."""
        store = FakeStore(
            seeds=[factories.seed("seed-1", labels={"env": "prod"})],
            registrations=[
                factories.registration("a", policy="Always", seed_selector={"matchLabels": {"env": "prod"}}),
                factories.registration("b", policy="Always", seed_selector={"matchLabels": {"env": "dev"}}),
            ],
        )

        result = _reconciler(store, config).reconcile("seed-1")

        assert result.wanted == frozenset({"a"})
        assert store.installations_for("b") == []


class TestConvergence:
    """Tests for converging existing installations."""

    def test_orphan_cleanup(self, config):
        """Test installations of unwanted registrations are deleted."""
        store = FakeStore(
            seeds=[factories.seed("seed-1")],
            registrations=[factories.registration("a", policy="Always"), factories.registration("b")],
            installations=[
                factories.installation("a-1", registration="a"),
                factories.installation("b-1", registration="b"),
            ],
        )

        result = _reconciler(store, config).reconcile("seed-1")

        assert result.deleted == ["b-1"]
        assert set(store.installations) == {"a-1"}

    def test_installations_of_other_seeds_are_untouched(self, config):
        """Test only installations of the reconciled seed are considered."""
        store = FakeStore(
            seeds=[factories.seed("seed-1")],
            registrations=[factories.registration("b")],
            installations=[factories.installation("b-1", seed="seed-2", registration="b")],
        )

        _reconciler(store, config).reconcile("seed-1")

        assert store.writes == 0

    def test_required_installation_is_kept(self, config):
        """Test an installation its controller still requires is not deleted."""
        store = FakeStore(
            seeds=[factories.seed("seed-1")],
            registrations=[factories.registration("provider-aws", "BackupBucket/aws")],
            installations=[factories.installation("provider-aws-1", registration="provider-aws", required=True)],
        )

        result = _reconciler(store, config).reconcile("seed-1")

        assert result.wanted == frozenset({"provider-aws"})
        assert result.deleted == []
        assert "provider-aws-1" in store.installations

    def test_second_reconcile_is_idempotent(self, config):
        """Test reconciling an unchanged world twice writes only once."""
        store = FakeStore(
            seeds=[factories.seed("seed-1")],
            registrations=[
                factories.registration("a", policy="Always"),
                factories.registration("b", policy="Always", deployment_refs=("b",)),
                factories.registration("c"),
            ],
            deployments=[factories.deployment("b")],
            installations=[factories.installation("c-1", registration="c")],
        )
        reconciler = _reconciler(store, config)

        first = reconciler.reconcile("seed-1")
        writes = store.writes
        second = reconciler.reconcile("seed-1")

        assert first.writes == 3
        assert second.writes == 0
        assert sorted(second.unchanged) == ["a", "b"]
        assert store.writes == writes

    def test_registration_change_is_patched(self, config):
        """Test a changed registration spec updates the hash label."""
        registration = factories.registration("a", policy="Always")
        store = FakeStore(seeds=[factories.seed("seed-1")], registrations=[registration])
        reconciler = _reconciler(store, config)
        reconciler.reconcile("seed-1")

        store.registrations["a"]["spec"]["resources"] = [{"kind": "Extension", "type": "foo"}]
        result = reconciler.reconcile("seed-1")

        assert result.patched == ["a"]
        installation = store.installations_for("a")[0]
        assert installation["metadata"]["labels"][REGISTRATION_SPEC_HASH_LABEL] == short_hash(
            store.registrations["a"]["spec"]
        )

    def test_deletion_race(self, config):
        """Test no replacement is created while the old installation is deleted."""
        store = FakeStore(
            seeds=[factories.seed("seed-1")],
            registrations=[factories.registration("a", policy="Always")],
            installations=[factories.installation("a-1", registration="a", deleting=True)],
        )

        with pytest.raises(InstallationDeletionPendingError):
            _reconciler(store, config).reconcile("seed-1")

        assert store.writes == 0

    def test_registration_in_deletion(self, config):
        """Test a registration in deletion keeps its installation untouched."""
        store = FakeStore(
            seeds=[factories.seed("seed-1")],
            registrations=[factories.registration("a", policy="Always", deleting=True)],
            installations=[factories.installation("a-1", registration="a")],
        )

        result = _reconciler(store, config).reconcile("seed-1")

        assert result.skipped == ["a"]
        assert store.writes == 0


class TestCancellation:
    """Tests for cancelling a reconcile."""

    def test_stop_before_start(self, config):
        """Test a set stop event aborts before anything is read or written."""
        store = FakeStore(
            seeds=[factories.seed("seed-1")],
            registrations=[factories.registration("a", policy="Always")],
        )
        stop = threading.Event()
        stop.set()

        with pytest.raises(ReconcileCancelledError):
            _reconciler(store, config).reconcile("seed-1", stop)

        assert store.writes == 0

    def test_stop_during_shoot_fan_out(self, config):
        """Test cancelling from a shoot task aborts the reconcile."""
        stop = threading.Event()

        def shoot_requirements(shoot, seed, registrations, internal_domain, external_domain, use_dns_records):
            stop.set()
            return set()

        store = FakeStore(
            seeds=[factories.seed("seed-1")],
            registrations=[factories.registration("a", policy="Always")],
            shoots=[factories.shoot("a", seed="seed-1")],
        )

        with pytest.raises(ReconcileCancelledError):
            _reconciler(store, config, shoot_requirements).reconcile("seed-1", stop)

        assert store.writes == 0
