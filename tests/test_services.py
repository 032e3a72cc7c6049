"""Tests for the typed feature and PRD services."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import pytest

from prd_storage.exceptions import RecordNotFoundError, ValidationError
from prd_storage.generation import GeneratedFeatureSet
from prd_storage.records import Record
from prd_storage.services import PRD, Feature, FeatureService, FeatureSet, PRDService
from prd_storage.services.types import prd_changes_to_payload
from prd_storage.storage import LocalCacheStore, MemoryKeyValueBackend
from prd_storage.sync import SyncCoordinator

if TYPE_CHECKING:
    from conftest import InMemoryRemoteStore


@pytest.fixture
def features(coordinator: SyncCoordinator) -> FeatureService:
    return FeatureService(coordinator)


@pytest.fixture
def prds(remote_store: InMemoryRemoteStore) -> PRDService:
    local = LocalCacheStore(MemoryKeyValueBackend(), "prd-storage-prds")
    return PRDService(SyncCoordinator(local, remote_store, remote_timeout=0.5, record_type="prd"))


class TestFeatureType:
    """Tests for the Feature document."""

    def test_invalid_priority(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            Feature.create("b1", "Login", priority="urgent")
        assert exc_info.value.field == "priority"

    def test_invalid_difficulty(self) -> None:
        with pytest.raises(ValidationError):
            Feature.create("b1", "Login", difficulty="trivial")

    def test_record_mapping(self) -> None:
        feature = Feature.create("b1", "Login", "Email sign in", "must", "easy")

        record = feature.to_record()

        assert record.id == feature.id
        assert record.parent_id == "b1"
        assert record.payload == {
            "name": "Login",
            "description": "Email sign in",
            "priority": "must",
            "difficulty": "easy",
        }
        assert Feature.from_record(record) == feature

    def test_from_record_defaults(self) -> None:
        feature = Feature.from_record(Record(id="f1", parent_id="b1", payload={}))

        assert feature.name == ""
        assert feature.priority == "should"
        assert feature.difficulty == "medium"

    def test_from_record_normalizes_stored_choices(self) -> None:
        record = Record(
            id="f1", parent_id="b1", payload={"priority": " Must ", "difficulty": "HARD"}
        )

        feature = Feature.from_record(record)

        assert feature.priority == "must"
        assert feature.difficulty == "hard"

    def test_from_record_unknown_choices_fall_back(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        record = Record(
            id="f1", parent_id="b1", payload={"priority": "urgent", "difficulty": 3}
        )

        with caplog.at_level(logging.WARNING):
            feature = Feature.from_record(record)

        assert feature.priority == "should"
        assert feature.difficulty == "medium"
        assert "urgent" in caplog.text

    def test_from_record_reads_wont_spelling(self) -> None:
        record = Record(id="f1", parent_id="b1", payload={"priority": "Won't"})
        assert Feature.from_record(record).priority == "wont"


class TestPRDType:
    """Tests for the PRD document."""

    def test_record_mapping(self) -> None:
        prd = PRD.create("b1", "fs1", {"sections": []}, title="Acme")
        prd.overview = "An overview"

        record = prd.to_record()

        assert record.parent_id == "b1"
        assert record.payload == {
            "featureSetId": "fs1",
            "title": "Acme",
            "content": {"sections": []},
            "overview": "An overview",
        }
        assert PRD.from_record(record) == prd

    def test_untitled_default(self) -> None:
        prd = PRD.from_record(Record(id="p1", parent_id="b1", payload={"title": ""}))
        assert prd.title == "Untitled PRD"
        assert prd.content == {}

    def test_changes_to_payload(self) -> None:
        payload = prd_changes_to_payload({"title": "New", "user_flows": "Flows"})
        assert payload == {"title": "New", "userFlows": "Flows"}

    def test_changes_to_payload_rejects_unknown(self) -> None:
        with pytest.raises(ValidationError):
            prd_changes_to_payload({"id": "other"})


class TestFeatureSetType:
    """Tests for the FeatureSet document."""

    def test_record_mapping(self) -> None:
        feature_set = FeatureSet(id="fs1", brief_id="b1", key_questions=["Which SSO?"])

        record = feature_set.to_record()

        assert record.parent_id == "b1"
        assert record.payload == {"keyQuestions": ["Which SSO?"]}
        assert FeatureSet.from_record(record) == feature_set

    def test_from_record_ignores_malformed_questions(self) -> None:
        record = Record(id="fs1", parent_id="b1", payload={"keyQuestions": "not a list"})
        assert FeatureSet.from_record(record).key_questions == []


class TestFeatureService:
    """Tests for FeatureService."""

    async def test_add_and_list(self, features: FeatureService) -> None:
        login = await features.add_feature("b1", "Login", priority="must")
        signup = await features.add_feature("b1", "Signup")
        await features.add_feature("b2", "Elsewhere")

        listed = await features.list_for_brief("b1")

        assert {f.id for f in listed} == {login.id, signup.id}

    async def test_list_is_oldest_first(
        self, features: FeatureService, remote_store: InMemoryRemoteStore
    ) -> None:
        base = datetime(2024, 1, 1, tzinfo=UTC)
        for index, name in enumerate(["Third", "First", "Second"]):
            created = base + timedelta(days=(2, 0, 1)[index])
            remote_store.seed(
                Record(
                    id=f"f{index}",
                    parent_id="b1",
                    payload={"name": name},
                    created_at=created,
                    updated_at=created,
                )
            )

        listed = await features.list_for_brief("b1")

        assert [f.name for f in listed] == ["First", "Second", "Third"]

    async def test_list_tolerates_out_of_vocabulary_records(
        self, features: FeatureService, remote_store: InMemoryRemoteStore
    ) -> None:
        remote_store.seed(Record(id="f1", parent_id="b1", payload={"priority": "must"}))
        remote_store.seed(Record(id="f2", parent_id="b1", payload={"priority": "Must"}))
        remote_store.seed(Record(id="f3", parent_id="b1", payload={"difficulty": "extreme"}))

        listed = await features.list_for_brief("b1")

        assert {f.id: f.priority for f in listed} == {"f1": "must", "f2": "must", "f3": "should"}
        assert await features.delete_for_brief("b1") == 3

    async def test_add_requires_name(self, features: FeatureService) -> None:
        with pytest.raises(ValidationError):
            await features.add_feature("b1", "")

    async def test_update_feature(self, features: FeatureService) -> None:
        feature = await features.add_feature("b1", "Login", "Email", priority="must")

        updated = await features.update_feature(feature.id, priority="could")

        assert updated.priority == "could"
        assert updated.name == "Login"
        assert updated.description == "Email"

    async def test_update_feature_validates(self, features: FeatureService) -> None:
        feature = await features.add_feature("b1", "Login")

        with pytest.raises(ValidationError):
            await features.update_feature(feature.id, priority="urgent")
        with pytest.raises(ValidationError):
            await features.update_feature(feature.id, brief_id="b2")

    async def test_update_missing_feature(self, features: FeatureService) -> None:
        with pytest.raises(RecordNotFoundError):
            await features.update_feature("nope", name="x")

    async def test_get_required(self, features: FeatureService) -> None:
        assert await features.get("nope") is None
        with pytest.raises(RecordNotFoundError):
            await features.get("nope", required=True)

    async def test_delete_feature(self, features: FeatureService) -> None:
        feature = await features.add_feature("b1", "Login")

        assert await features.delete_feature(feature.id) is True
        assert await features.get(feature.id) is None

    async def test_replace_features(
        self, features: FeatureService, remote_store: InMemoryRemoteStore
    ) -> None:
        old = await features.add_feature("b1", "Old")
        new = [Feature.create("ignored", "Login", priority="must"), Feature.create("b1", "Signup")]

        saved = await features.replace_features("b1", new)

        assert [f.brief_id for f in saved] == ["b1", "b1"]
        listed = await features.list_for_brief("b1")
        assert {f.name for f in listed} == {"Login", "Signup"}
        assert old.id not in remote_store.records

    async def test_replace_features_offline(
        self, features: FeatureService, remote_store: InMemoryRemoteStore
    ) -> None:
        await features.add_feature("b1", "Old")
        remote_store.offline = True

        await features.replace_features("b1", [Feature.create("b1", "Login")])

        listed = await features.list_for_brief("b1")
        assert [f.name for f in listed] == ["Login"]

    def test_group_by_priority(self) -> None:
        grouped = FeatureService.group_by_priority(
            [
                Feature.create("b1", "A", priority="must"),
                Feature.create("b1", "B", priority="wont"),
                Feature.create("b1", "C", priority="must"),
            ]
        )

        assert list(grouped) == ["must", "should", "could", "wont"]
        assert [f.name for f in grouped["must"]] == ["A", "C"]
        assert grouped["should"] == []


@pytest.fixture
def feature_sets(
    coordinator: SyncCoordinator, feature_set_coordinator: SyncCoordinator
) -> FeatureService:
    return FeatureService(coordinator, feature_set_coordinator)


class TestFeatureSets:
    """Tests for feature-set persistence on FeatureService."""

    async def test_save_and_get(self, feature_sets: FeatureService) -> None:
        saved = await feature_sets.save_feature_set(
            "b1",
            [Feature.create("b1", "Login", priority="must"), Feature.create("b1", "Export")],
            ["Which SSO providers?"],
        )

        loaded = await feature_sets.get_feature_set("b1")

        assert loaded is not None
        assert loaded.id == saved.id
        assert loaded.brief_id == "b1"
        assert loaded.key_questions == ["Which SSO providers?"]
        assert {f.name for f in loaded.features} == {"Login", "Export"}

    async def test_get_missing(self, feature_sets: FeatureService) -> None:
        assert await feature_sets.get_feature_set("b1") is None

    async def test_save_again_keeps_one_set(
        self, feature_sets: FeatureService, feature_set_remote: InMemoryRemoteStore
    ) -> None:
        first = await feature_sets.save_feature_set(
            "b1", [Feature.create("b1", "Old")], ["First question?"]
        )
        second = await feature_sets.save_feature_set(
            "b1", [Feature.create("b1", "New")], ["Second question?"]
        )

        loaded = await feature_sets.get_feature_set("b1")

        assert second.id == first.id
        assert list(feature_set_remote.records) == [first.id]
        assert loaded is not None
        assert loaded.key_questions == ["Second question?"]
        assert [f.name for f in loaded.features] == ["New"]

    async def test_save_offline_is_served_locally(
        self,
        feature_sets: FeatureService,
        remote_store: InMemoryRemoteStore,
        feature_set_remote: InMemoryRemoteStore,
    ) -> None:
        remote_store.offline = True
        feature_set_remote.offline = True

        await feature_sets.save_feature_set("b1", [Feature.create("b1", "Login")], ["Why?"])
        loaded = await feature_sets.get_feature_set("b1")

        assert loaded is not None
        assert loaded.key_questions == ["Why?"]
        assert [f.name for f in loaded.features] == ["Login"]

    async def test_save_generated(self, feature_sets: FeatureService) -> None:
        generated = GeneratedFeatureSet(
            features=[Feature.create("b1", "Login", priority="must")],
            key_questions=["Which SSO providers?"],
        )

        saved = await feature_sets.save_generated("b1", generated)

        assert saved.key_questions == ["Which SSO providers?"]
        assert [f.name for f in saved.features] == ["Login"]

    async def test_requires_feature_set_coordinator(self, features: FeatureService) -> None:
        with pytest.raises(RuntimeError):
            await features.get_feature_set("b1")


class TestPRDService:
    """Tests for PRDService."""

    async def test_save_and_get(self, prds: PRDService) -> None:
        prd = PRD.create("b1", "fs1", {"sections": [{"featureName": "Login"}]}, title="Acme")

        await prds.save(prd)
        fetched = await prds.get(prd.id, required=True)

        assert fetched is not None
        assert fetched.title == "Acme"
        assert fetched.content == prd.content

    async def test_get_for_brief_returns_latest(self, prds: PRDService) -> None:
        first = await prds.save(PRD.create("b1", "fs1", {}, title="First"))
        second = await prds.save(PRD.create("b1", "fs1", {}, title="Second"))
        await prds.update(first.id, title="First revised")

        latest = await prds.get_for_brief("b1")

        assert latest is not None
        assert latest.id == first.id
        assert latest.title == "First revised"
        assert second.id != first.id

    async def test_get_for_brief_none(self, prds: PRDService) -> None:
        assert await prds.get_for_brief("b1") is None

    async def test_update_keeps_content(self, prds: PRDService) -> None:
        prd = await prds.save(PRD.create("b1", "fs1", {"sections": []}, title="Acme"))

        updated = await prds.update(prd.id, overview="Overview text")

        assert updated.overview == "Overview text"
        assert updated.title == "Acme"
        assert updated.content == {"sections": []}

    async def test_delete(self, prds: PRDService) -> None:
        prd = await prds.save(PRD.create("b1", "fs1", {}))

        assert await prds.delete(prd.id) is True
        assert await prds.delete(prd.id) is False
