"""Tests for AttemptController wiring: selection, polling lifecycle and teardown."""

import asyncio

import pytest

from attempt_sync.core.config import SyncConfig
from attempt_sync.core.controller import AttemptController, build_profile_catalog
from attempt_sync.core.models import AttemptData, ProcessStatus, RunReason, TaskAttempt
from attempt_sync.core.profiles import AgentProfile, ProfileCatalog, VariantProfile
from attempt_sync.errors import TaskServerError
from tests.unit.fakes import FakeFetcher, agent_action, make_process

INTERVAL = 0.05  # 50ms for fast tests


def running_agent(process_id: str, attempt_id: str, variant=None):
    return make_process(process_id, RunReason.CODING_AGENT, ProcessStatus.RUNNING,
                        agent_action("claude", variant), attempt_id)


def finished_agent(process_id: str, attempt_id: str, variant=None):
    return make_process(process_id, RunReason.CODING_AGENT, ProcessStatus.COMPLETED,
                        agent_action("claude", variant), attempt_id)


@pytest.fixture
def fetcher():
    f = FakeFetcher()
    f.set_processes("A", [finished_agent("a-1", "A", "fast")])
    f.set_processes("R", [running_agent("r-1", "R", "plan")])
    return f


class TestSelection:

    @pytest.mark.asyncio
    async def test_select_runs_initial_reconciliation(self, fetcher):
        controller = AttemptController(fetcher)

        data = await controller.select_attempt(TaskAttempt(id="A"))

        assert fetcher.list_calls == ["A"]
        assert [p.id for p in data.processes] == ["a-1"]
        assert controller.attempt_data is data
        assert controller.selected_attempt.id == "A"
        await controller.close()

    @pytest.mark.asyncio
    async def test_deselect_clears_data(self, fetcher):
        controller = AttemptController(fetcher)
        await controller.select_attempt(TaskAttempt(id="A"))

        await controller.select_attempt(None)

        assert controller.attempt_data == AttemptData.empty()
        assert controller.selected_attempt is None
        assert controller.is_attempt_running is False
        assert not controller.scheduler.is_armed

    @pytest.mark.asyncio
    async def test_switch_resets_stopping(self, fetcher):
        controller = AttemptController(fetcher)
        await controller.select_attempt(TaskAttempt(id="A"))
        controller.set_stopping(True)

        await controller.select_attempt(TaskAttempt(id="R"))

        assert controller.is_stopping is False
        await controller.close()

    @pytest.mark.asyncio
    async def test_switch_discards_slow_response_from_previous_attempt(self, fetcher):
        controller = AttemptController(fetcher)
        gate = asyncio.Event()
        fetcher.gates["A"] = gate

        slow = asyncio.create_task(controller.select_attempt(TaskAttempt(id="A")))
        await asyncio.sleep(0)
        await controller.select_attempt(TaskAttempt(id="R"))
        gate.set()
        await slow

        assert [p.id for p in controller.attempt_data.processes] == ["r-1"]
        await controller.close()

    @pytest.mark.asyncio
    async def test_listeners_receive_published_data(self, fetcher):
        controller = AttemptController(fetcher)
        published = []
        controller.subscribe(published.append)

        await controller.select_attempt(TaskAttempt(id="A"))

        assert published[-1].processes[0].id == "a-1"


class TestPollingLifecycle:

    @pytest.mark.asyncio
    async def test_idle_attempt_is_not_polled(self, fetcher):
        controller = AttemptController(fetcher, poll_interval_seconds=INTERVAL)
        await controller.select_attempt(TaskAttempt(id="A"))

        await asyncio.sleep(INTERVAL * 3)

        assert fetcher.list_calls == ["A"]
        assert not controller.scheduler.is_armed

    @pytest.mark.asyncio
    async def test_running_attempt_is_polled(self, fetcher):
        controller = AttemptController(fetcher, poll_interval_seconds=INTERVAL)
        await controller.select_attempt(TaskAttempt(id="R"))

        assert controller.is_attempt_running
        assert controller.scheduler.armed_attempt_id == "R"

        await asyncio.sleep(INTERVAL * 3.5)
        await controller.close()

        assert 3 <= len(fetcher.list_calls) <= 5

    @pytest.mark.asyncio
    async def test_polling_stops_when_attempt_finishes(self, fetcher):
        controller = AttemptController(fetcher, poll_interval_seconds=INTERVAL)
        await controller.select_attempt(TaskAttempt(id="R"))

        fetcher.set_processes("R", [
            make_process("r-1", RunReason.CODING_AGENT, ProcessStatus.COMPLETED,
                         agent_action("claude", "plan"), "R"),
        ])
        await asyncio.sleep(INTERVAL * 2.5)

        assert controller.is_attempt_running is False
        assert not controller.scheduler.is_armed
        count = len(fetcher.list_calls)
        await asyncio.sleep(INTERVAL * 3)
        assert len(fetcher.list_calls) == count

    @pytest.mark.asyncio
    async def test_stopping_disarms_and_clearing_rearms(self, fetcher):
        controller = AttemptController(fetcher, poll_interval_seconds=INTERVAL)
        await controller.select_attempt(TaskAttempt(id="R"))

        controller.set_stopping(True)
        assert controller.is_attempt_running is False
        assert not controller.scheduler.is_armed

        controller.set_stopping(False)
        assert controller.scheduler.armed_attempt_id == "R"
        await controller.close()

    @pytest.mark.asyncio
    async def test_switching_attempts_moves_the_timer(self, fetcher):
        fetcher.set_processes("S", [running_agent("s-1", "S")])
        controller = AttemptController(fetcher, poll_interval_seconds=INTERVAL)
        await controller.select_attempt(TaskAttempt(id="R"))

        await controller.select_attempt(TaskAttempt(id="S"))
        fetcher.list_calls.clear()
        await asyncio.sleep(INTERVAL * 2.5)
        await controller.close()

        assert controller.scheduler.armed_attempt_id is None
        assert fetcher.list_calls
        assert set(fetcher.list_calls) == {"S"}

    @pytest.mark.asyncio
    async def test_poll_failures_keep_state_and_keep_polling(self, fetcher):
        controller = AttemptController(fetcher, poll_interval_seconds=INTERVAL)
        before = await controller.select_attempt(TaskAttempt(id="R"))

        fetcher.list_error = TaskServerError("connection refused")
        await asyncio.sleep(INTERVAL * 2.5)

        assert controller.attempt_data is before
        assert controller.scheduler.is_armed
        await controller.close()


class TestDerivedState:

    @pytest.mark.asyncio
    async def test_default_variant_from_processes(self, fetcher):
        controller = AttemptController(fetcher)
        await controller.select_attempt(TaskAttempt(id="A", profile="claude"))

        assert controller.default_follow_up_variant == "fast"

    @pytest.mark.asyncio
    async def test_default_variant_from_catalog(self, fetcher):
        catalog = ProfileCatalog(profiles=[
            AgentProfile(label="claude", variants=[VariantProfile(label="careful")]),
        ])
        controller = AttemptController(fetcher, catalog=catalog)
        await controller.select_attempt(TaskAttempt(id="empty", profile="claude"))

        assert controller.default_follow_up_variant == "careful"

    @pytest.mark.asyncio
    async def test_snapshot(self, fetcher):
        controller = AttemptController(fetcher, poll_interval_seconds=10, default_profile="claude")
        await controller.select_attempt(TaskAttempt(id="R"))

        snapshot = controller.snapshot()

        assert snapshot.attempt.id == "R"
        assert snapshot.is_attempt_running is True
        assert snapshot.default_follow_up_variant == "plan"
        assert snapshot.follow_up.can_send is False
        assert "r-1" in snapshot.attempt_data.running_process_details
        await controller.close()

    def test_from_config(self, fetcher):
        config = SyncConfig(polling={"interval_seconds": 2.5}, follow_up={"default_profile": "amp"})

        controller = AttemptController.from_config(config, fetcher)

        assert controller.scheduler.interval_seconds == 2.5
        assert controller.follow_up.default_profile == "amp"


class TestOpenInEditor:

    @pytest.mark.asyncio
    async def test_forwards_editor_type(self, fetcher):
        controller = AttemptController(fetcher)
        await controller.select_attempt(TaskAttempt(id="A"))

        assert await controller.open_in_editor("vscode") is True
        assert fetcher.editor_calls == [("A", "vscode")]

    @pytest.mark.asyncio
    async def test_no_attempt_selected(self, fetcher):
        controller = AttemptController(fetcher)

        assert await controller.open_in_editor() is False
        assert fetcher.editor_calls == []

    @pytest.mark.asyncio
    async def test_server_refusal_returns_false(self, fetcher):
        fetcher.editor_error = TaskServerError("No editor configured")
        controller = AttemptController(fetcher)
        await controller.select_attempt(TaskAttempt(id="A"))

        assert await controller.open_in_editor() is False

    @pytest.mark.asyncio
    async def test_unexpected_errors_propagate(self, fetcher):
        fetcher.editor_error = RuntimeError("bug")
        controller = AttemptController(fetcher)
        await controller.select_attempt(TaskAttempt(id="A"))

        with pytest.raises(RuntimeError):
            await controller.open_in_editor()


class TestTeardown:

    @pytest.mark.asyncio
    async def test_close_cancels_background_refresh(self, fetcher):
        controller = AttemptController(fetcher)
        await controller.select_attempt(TaskAttempt(id="A"))
        fetcher.gates["A"] = asyncio.Event()

        task = controller.refresh_in_background("A")
        await asyncio.sleep(0)
        await controller.close()

        assert task.cancelled()

    @pytest.mark.asyncio
    async def test_close_disarms_and_stays_disarmed(self, fetcher):
        controller = AttemptController(fetcher, poll_interval_seconds=INTERVAL)
        await controller.select_attempt(TaskAttempt(id="R"))

        await controller.close()
        controller.set_stopping(False)

        assert not controller.scheduler.is_armed


class TestBuildProfileCatalog:

    @pytest.mark.asyncio
    async def test_local_profiles_override_remote(self, fetcher):
        fetcher.catalog = ProfileCatalog(profiles=[
            AgentProfile(label="claude", variants=[VariantProfile(label="plan")]),
            AgentProfile(label="amp"),
        ])
        local = ProfileCatalog(profiles=[
            AgentProfile(label="claude", variants=[VariantProfile(label="careful")]),
        ])

        catalog = await build_profile_catalog(fetcher, local)

        assert [p.label for p in catalog.profiles] == ["claude", "amp"]
        assert catalog.get_profile("claude").variants[0].label == "careful"

    @pytest.mark.asyncio
    async def test_unreachable_server_uses_local(self, fetcher):
        fetcher.profiles_error = TaskServerError("connection refused")
        local = ProfileCatalog(profiles=[AgentProfile(label="claude")])

        assert await build_profile_catalog(fetcher, local) is local
        assert await build_profile_catalog(fetcher, None) is None

    @pytest.mark.asyncio
    async def test_remote_only(self, fetcher):
        fetcher.catalog = ProfileCatalog(profiles=[AgentProfile(label="amp")])

        catalog = await build_profile_catalog(fetcher)

        assert catalog is fetcher.catalog
