"""
Tests for workflow/status.py and WorkflowConfig loading.

Pure logic; no backend involved.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from errors import ConfigError, UnknownStatus
from models.workflow import DONE, IN_PROGRESS, NOT_STARTED, TEST, WorkflowConfig
from workflow.status import StatusTransitionEngine


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _config_dict(**overrides) -> dict:
    data = {
        "statusMapping": {
            "notStarted": "Not started",
            "inProgress": "In progress",
            "test": "Test",
            "done": "Done",
        },
        "transitions": {
            "notStarted": ["inProgress"],
            "inProgress": ["test", "done"],
            "test": ["done", "inProgress"],
            "done": [],
        },
        "taskTypes": ["Feature", "Bug", "Refactoring"],
        "defaultStatus": "notStarted",
        "requiresValidation": ["done"],
    }
    data.update(overrides)
    return data


@pytest.fixture
def engine():
    return StatusTransitionEngine(WorkflowConfig.from_dict(_config_dict()))


# ---------------------------------------------------------------------------
# Label resolution
# ---------------------------------------------------------------------------

class TestResolution:
    def test_mapping_is_bijective(self, engine):
        for key in engine.config.status_mapping:
            assert engine.key_for(engine.label_for(key)) == key

    def test_unknown_label_raises(self, engine):
        with pytest.raises(UnknownStatus) as exc:
            engine.key_for("Blocked")
        assert "Not started" in exc.value.valid

    def test_unknown_key_raises(self, engine):
        with pytest.raises(UnknownStatus):
            engine.label_for("archived")

    def test_role_labels(self, engine):
        assert engine.not_started_label == "Not started"
        assert engine.default_label == "Not started"


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------

class TestTransitions:
    def test_is_allowed_matches_transition_table(self, engine):
        transitions = engine.config.transitions
        for current in engine.config.status_mapping:
            for target in engine.config.status_mapping:
                assert engine.is_allowed(current, target) == (target in transitions.get(current, []))

    def test_is_allowed_unknown_current_raises(self, engine):
        with pytest.raises(UnknownStatus):
            engine.is_allowed("archived", IN_PROGRESS)

    def test_allowed_targets_hides_human_only_for_automated(self, engine):
        assert engine.allowed_targets(IN_PROGRESS) == [TEST]
        assert engine.allowed_targets(IN_PROGRESS, automated=False) == [TEST, DONE]

    def test_allowed_labels(self, engine):
        assert engine.allowed_labels(TEST) == ["In progress"]

    def test_is_human_only(self, engine):
        assert engine.is_human_only(DONE)
        assert not engine.is_human_only(TEST)


# ---------------------------------------------------------------------------
# Recommendation
# ---------------------------------------------------------------------------

class TestRecommend:
    def test_zero_percent_stays(self, engine):
        assert engine.recommend(NOT_STARTED, 0) is None

    def test_partial_progress_moves_to_in_progress(self, engine):
        assert engine.recommend(NOT_STARTED, 40) == IN_PROGRESS

    def test_partial_progress_never_returns_current(self, engine):
        assert engine.recommend(IN_PROGRESS, 40) is None

    def test_complete_from_in_progress_is_test_never_done(self, engine):
        assert engine.recommend(IN_PROGRESS, 100) == TEST

    def test_complete_from_not_started_moves_toward_test(self, engine):
        # notStarted -> test is not a legal edge here
        assert engine.recommend(NOT_STARTED, 100) == IN_PROGRESS

    def test_complete_from_test_stays(self, engine):
        assert engine.recommend(TEST, 100) is None

    def test_never_recommends_human_only_even_when_only_edge(self):
        config = WorkflowConfig.from_dict(
            _config_dict(transitions={"notStarted": ["inProgress"], "inProgress": ["done"]})
        )
        engine = StatusTransitionEngine(config)
        assert engine.recommend(IN_PROGRESS, 100) is None

    def test_unknown_current_raises(self, engine):
        with pytest.raises(UnknownStatus):
            engine.recommend("archived", 50)

    def test_status_info(self, engine):
        info = engine.status_info("Not started", 50)
        assert info.current == "Not started"
        assert info.available == ["In progress"]
        assert info.recommended == "In progress"


# ---------------------------------------------------------------------------
# Config loading
# ---------------------------------------------------------------------------

class TestWorkflowConfig:
    def test_accepts_snake_case_keys(self):
        config = WorkflowConfig.from_dict(WorkflowConfig.from_dict(_config_dict()).to_dict())
        assert config.requires_validation == ["done"]
        assert config.task_types == ["Feature", "Bug", "Refactoring"]

    def test_legacy_boolean_requires_validation(self):
        config = WorkflowConfig.from_dict(_config_dict(requiresValidation=True))
        assert config.requires_validation == ["done"]

    def test_missing_requires_validation_is_empty(self):
        data = _config_dict()
        del data["requiresValidation"]
        assert WorkflowConfig.from_dict(data).requires_validation == []

    @pytest.mark.parametrize("field", ["statusMapping", "transitions", "taskTypes", "defaultStatus"])
    def test_missing_field(self, field):
        data = _config_dict()
        del data[field]
        with pytest.raises(ConfigError, match=field):
            WorkflowConfig.from_dict(data)

    def test_missing_role_key(self):
        mapping = {"notStarted": "Todo", "inProgress": "Doing", "done": "Done"}
        with pytest.raises(ConfigError, match="test"):
            WorkflowConfig.from_dict(
                _config_dict(statusMapping=mapping, transitions={}, requiresValidation=[])
            )

    def test_duplicate_label_rejected(self):
        mapping = {
            "notStarted": "Open",
            "inProgress": "Open",
            "test": "Test",
            "done": "Done",
        }
        with pytest.raises(ConfigError, match="Open"):
            WorkflowConfig.from_dict(_config_dict(statusMapping=mapping))

    def test_unknown_transition_target(self):
        with pytest.raises(ConfigError, match="archived"):
            WorkflowConfig.from_dict(_config_dict(transitions={"done": ["archived"]}))

    def test_unknown_default_status(self):
        with pytest.raises(ConfigError, match="backlog"):
            WorkflowConfig.from_dict(_config_dict(defaultStatus="backlog"))

    def test_unknown_requires_validation_key(self):
        with pytest.raises(ConfigError, match="shipped"):
            WorkflowConfig.from_dict(_config_dict(requiresValidation=["shipped"]))

    def test_empty_task_types(self):
        with pytest.raises(ConfigError, match="taskTypes"):
            WorkflowConfig.from_dict(_config_dict(taskTypes=[]))

    @pytest.mark.parametrize("task_types", ["Feature", ["Feature", 3], {"Feature": True}])
    def test_task_types_must_be_list_of_strings(self, task_types):
        with pytest.raises(ConfigError, match="taskTypes must be a list"):
            WorkflowConfig.from_dict(_config_dict(taskTypes=task_types))

    def test_transition_targets_must_be_list(self):
        transitions = {"notStarted": "inProgress", "inProgress": ["test"], "test": ["done"]}
        with pytest.raises(ConfigError, match=r"transitions\['notStarted'\]"):
            WorkflowConfig.from_dict(_config_dict(transitions=transitions))

    def test_requires_validation_must_be_list(self):
        with pytest.raises(ConfigError, match="requiresValidation must be a list"):
            WorkflowConfig.from_dict(_config_dict(requiresValidation="done"))

    def test_default_status_must_be_string(self):
        with pytest.raises(ConfigError, match="Default status"):
            WorkflowConfig.from_dict(_config_dict(defaultStatus=["notStarted"]))

    def test_not_an_object(self):
        with pytest.raises(ConfigError):
            WorkflowConfig.from_dict(["notStarted"])
