"""
Tests for the project lifecycle (core/services/project_service.py)
"""

import itertools
import shutil

from PIL import Image
import pytest

from core.errors import AccessDeniedError, FolderUnavailableError
from core.services.photo_mutations import assign_bucket, remove_day_assignment, toggle_favorite
from core.services.project_service import HISTORY_LIMIT, ProjectService
from core.services.serialization import serialize_state
from infrastructure.local_media_source import LocalMediaSource

HOUR = 60 * 60 * 1000


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def clock():
    ticks = itertools.count(1_000)
    return lambda: next(ticks)


@pytest.fixture
def service(handle_store, state_store, sources, id_factory, clock):
    _, factory = sources
    return ProjectService(handle_store, state_store, factory, clock=clock, id_factory=id_factory)


@pytest.fixture
def folder(make_source, make_media):
    return make_source(
        "/trips/iceland",
        [
            make_media("Day 1/IMG_01.jpg", last_modified=1000),
            make_media("Day 1/IMG_02.jpg", last_modified=900),
            make_media("Misc/IMG_03.jpg", last_modified=20 * HOUR),
            make_media("98_ARCHIVE/IMG_04.jpg", last_modified=21 * HOUR),
        ],
    )


# ============================================================================
# ProjectService
# ============================================================================

class TestInitProject:
    def test_creates_and_persists(self, service, folder, state_store, handle_store):
        result = service.init_project("/trips/iceland", project_name="  Iceland  ", project_id="p1")
        assert result.project_id == "p1"
        assert result.state.project_name == "Iceland"
        assert result.state.root_path == "iceland"
        assert handle_store.get_handle("p1") == "/trips/iceland"
        assert state_store.states["p1"] == serialize_state(result.state)
        assert result.state.last_modified == 1000

    def test_archive_rule_and_suggestions(self, service, folder):
        result = service.init_project("/trips/iceland", project_id="p1")
        by_name = {p.original_name: p for p in result.state.photos}
        assert by_name["IMG_04.jpg"].archived
        assert by_name["IMG_02.jpg"].day == 1
        assert by_name["IMG_03.jpg"].day is None
        assert sorted(result.suggested_days) == [1, 2]
        assert len(result.suggested_days[2]) == 2

    def test_day_containers_applied(self, service, folder):
        result = service.init_project("/trips/iceland", project_id="p1", day_containers=["Day 1"])
        assert result.state.day_containers == ["Day 1"]
        assert all(p.day == 1 for p in result.state.photos if p.file_path.startswith("Day 1/"))

    def test_generated_project_id(self, service, folder):
        result = service.init_project("/trips/iceland")
        assert len(result.project_id) == 12

    def test_empty_folder(self, service, make_source, state_store, handle_store):
        make_source("/empty", [])
        with pytest.raises(FolderUnavailableError):
            service.init_project("/empty", project_id="p1")
        assert state_store.states == {}
        assert handle_store.handles == {}

    def test_permission_refused(self, service, make_source, make_media):
        make_source("/locked", [make_media("a.jpg")], permission=False)
        with pytest.raises(AccessDeniedError):
            service.init_project("/locked", project_id="p1")

    def test_permission_error(self, service, make_source, make_media):
        make_source("/broken", [make_media("a.jpg")], permission=OSError("boom"))
        with pytest.raises(AccessDeniedError):
            service.init_project("/broken", project_id="p1")

    def test_missing_folder(self, service, make_source, make_media):
        make_source("/gone", [make_media("a.jpg")], permission=FileNotFoundError("gone"))
        with pytest.raises(FolderUnavailableError):
            service.init_project("/gone", project_id="p1")


class TestOpenAndDelete:
    def test_open_restores_edits(self, service, folder):
        service.init_project("/trips/iceland", project_id="p1")
        session = service.open_session("p1")
        target = next(p for p in session.photos if p.original_name == "IMG_03.jpg")
        session.commit(assign_bucket(session.photos, target.id, "B", day=2))

        reopened = service.open_project("p1")
        photo = next(p for p in reopened.photos if p.original_name == "IMG_03.jpg")
        assert (photo.day, photo.bucket, photo.sequence) == (2, "B", 1)
        assert photo.current_name == "D02_B_001__IMG_03.jpg"

    def test_reassigned_day_survives_day_containers(self, service, folder):
        service.init_project("/trips/iceland", project_id="p1", day_containers=["Day 1"])
        session = service.open_session("p1")
        target = next(p for p in session.photos if p.original_name == "IMG_01.jpg")
        session.commit(assign_bucket(session.photos, target.id, "A", day=5))

        reopened = next(p for p in service.open_project("p1").photos if p.original_name == "IMG_01.jpg")
        assert (reopened.day, reopened.bucket) == (5, "A")
        assert reopened.current_name == "D05_A_001__IMG_01.jpg"

    def test_removed_day_survives_day_containers(self, service, folder):
        service.init_project("/trips/iceland", project_id="p1", day_containers=["Day 1"])
        session = service.open_session("p1")
        target = next(p for p in session.photos if p.original_name == "IMG_01.jpg")
        session.commit(remove_day_assignment(session.photos, target.id))

        reopened = next(p for p in service.open_project("p1").photos if p.original_name == "IMG_01.jpg")
        assert reopened.day is None

    def test_day_containers_seed_new_files(self, service, folder, make_media):
        service.init_project("/trips/iceland", project_id="p1", day_containers=["Day 1"])
        folder.files.append(make_media("Day 1/Extra/IMG_09.jpg", last_modified=5000))
        added = next(p for p in service.open_project("p1").photos if p.original_name == "IMG_09.jpg")
        assert added.day == 1

    def test_deleted_folder_is_unavailable_and_keeps_handle(
        self, handle_store, state_store, id_factory, clock, tmp_path
    ):
        root = tmp_path / "iceland"
        (root / "Beach").mkdir(parents=True)
        Image.new("RGB", (8, 8), "red").save(root / "Beach" / "IMG_1.jpg")
        service = ProjectService(handle_store, state_store, LocalMediaSource, clock=clock, id_factory=id_factory)
        service.init_project(str(root), project_id="p1")

        shutil.rmtree(root)
        with pytest.raises(FolderUnavailableError) as exc:
            service.open_project("p1")
        assert not exc.value.can_regrant
        assert handle_store.get_handle("p1") == str(root)

    def test_open_does_not_write(self, service, folder, state_store):
        service.init_project("/trips/iceland", project_id="p1")
        saves = state_store.saves
        service.open_project("p1")
        assert state_store.saves == saves

    def test_failed_open_leaves_state_untouched(self, service, folder, state_store):
        service.init_project("/trips/iceland", project_id="p1")
        before = state_store.states["p1"]
        folder.files = []
        with pytest.raises(FolderUnavailableError):
            service.open_project("p1")
        assert state_store.states["p1"] is before

    def test_delete_removes_state_and_handle(self, service, folder, state_store, handle_store):
        service.init_project("/trips/iceland", project_id="p1")
        service.delete_project("p1")
        assert "p1" not in state_store.states
        assert handle_store.get_handle("p1") is None


# ============================================================================
# ProjectSession
# ============================================================================

class TestProjectSession:
    @pytest.fixture
    def session(self, service, folder):
        service.init_project("/trips/iceland", project_id="p1")
        return service.open_session("p1")

    def test_commit_persists_every_mutation(self, session, state_store):
        saves = state_store.saves
        first = session.photos[0]
        session.commit(toggle_favorite(session.photos, first.id))
        assert state_store.saves == saves + 1
        stored = {e["file_path"]: e for e in state_store.states["p1"]["edits"]}
        assert stored[first.file_path]["favorite"] is True
        assert state_store.states["p1"]["last_modified"] == session.state.last_modified

    def test_undo_redo(self, session):
        original = session.photos
        first = original[0]
        session.commit(toggle_favorite(original, first.id))
        assert session.can_undo
        assert session.undo()
        assert session.photos is original
        assert session.can_redo
        assert session.redo()
        assert session.photos[0].favorite
        assert not session.redo()

    def test_commit_clears_redo(self, session):
        session.commit(toggle_favorite(session.photos, session.photos[0].id))
        session.undo()
        session.commit(toggle_favorite(session.photos, session.photos[1].id))
        assert not session.can_redo

    def test_history_is_capped(self, session):
        for _ in range(HISTORY_LIMIT + 5):
            session.commit(toggle_favorite(session.photos, session.photos[0].id))
        undone = 0
        while session.undo():
            undone += 1
        assert undone == HISTORY_LIMIT

    def test_day_labels(self, session, state_store):
        session.set_day_label(1, " Arrival ")
        assert state_store.states["p1"]["day_labels"] == {"1": "Arrival"}
        session.set_day_label(1, "")
        assert state_store.states["p1"]["day_labels"] == {}

    def test_accept_suggested_days(self, session):
        suggested = {1: [p.id for p in session.photos]}
        session.accept_suggested_days(suggested)
        assert all(p.day is not None for p in session.photos)

    def test_reload_rescans_and_drops_history(self, session, folder, make_media):
        session.commit(toggle_favorite(session.photos, session.photos[0].id))
        folder.files.append(make_media("Misc/IMG_05.jpg", last_modified=30 * HOUR))
        session.reload()
        assert "IMG_05.jpg" in {p.original_name for p in session.photos}
        assert any(p.favorite for p in session.photos)
        assert not session.can_undo
        assert not session.can_redo

    def test_failed_reload_keeps_state(self, session, folder):
        before = session.state
        session.commit(toggle_favorite(session.photos, session.photos[0].id))
        folder.files = []
        with pytest.raises(FolderUnavailableError):
            session.reload()
        assert session.state is before
        assert session.can_undo

    def test_plan_export(self, session):
        target = next(p for p in session.photos if p.original_name == "IMG_03.jpg")
        session.commit(assign_bucket(session.photos, target.id, "A", day=2))
        moves = session.plan_export()
        assert [m.destination for m in moves] == ["01_DAYS/Day 02/A_Establishing/D02_A_001__IMG_03.jpg"]
