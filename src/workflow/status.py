"""
Status transition engine.

Pure logic over a WorkflowConfig: label/key resolution, transition checks and
percentage-driven recommendations. No I/O.

Statuses listed in requires_validation are human-only. The engine never
recommends one of them, and automated callers are refused a transition into
one even when the transition graph allows it.
"""

from typing import List, Optional

from errors import UnknownStatus
from models.task import StatusInfo
from models.workflow import IN_PROGRESS, NOT_STARTED, TEST, WorkflowConfig


class StatusTransitionEngine:
    def __init__(self, config: WorkflowConfig):
        self.config = config
        self._keys_by_label = {label: key for key, label in config.status_mapping.items()}

    # -- resolution -------------------------------------------------------

    @property
    def labels(self) -> List[str]:
        return list(self.config.status_mapping.values())

    def key_for(self, label: str) -> str:
        """Resolve a display label to its internal key."""
        try:
            return self._keys_by_label[label]
        except KeyError:
            raise UnknownStatus(label, self.labels) from None

    def label_for(self, key: str) -> str:
        """Resolve an internal key to its display label."""
        try:
            return self.config.status_mapping[key]
        except KeyError:
            raise UnknownStatus(key, list(self.config.status_mapping)) from None

    def _require_key(self, key: str) -> None:
        if key not in self.config.status_mapping:
            raise UnknownStatus(key, list(self.config.status_mapping))

    # -- transitions ------------------------------------------------------

    def is_human_only(self, key: str) -> bool:
        return key in self.config.requires_validation

    def is_allowed(self, current_key: str, target_key: str) -> bool:
        """True iff target_key is a transition target of current_key."""
        self._require_key(current_key)
        return target_key in self.config.transitions.get(current_key, [])

    def allowed_targets(self, current_key: str, automated: bool = True) -> List[str]:
        """Transition targets of current_key in config order.

        Human-only targets are left out for automated callers.
        """
        self._require_key(current_key)
        targets = self.config.transitions.get(current_key, [])
        if automated:
            targets = [k for k in targets if not self.is_human_only(k)]
        return list(targets)

    def allowed_labels(self, current_key: str, automated: bool = True) -> List[str]:
        return [self.label_for(k) for k in self.allowed_targets(current_key, automated)]

    # -- recommendation ---------------------------------------------------

    def _candidate(self, current_key: str, target_key: str) -> Optional[str]:
        if target_key == current_key or self.is_human_only(target_key):
            return None
        if self.is_allowed(current_key, target_key):
            return target_key
        return None

    def recommend(self, current_key: str, percentage: int) -> Optional[str]:
        """
        Recommend the next status key for a completion percentage.

        0%                  -> None (stay put)
        1-99%               -> inProgress
        100%                -> test
        100% from notStarted, test not reachable -> inProgress (toward test)

        A candidate must be a legal transition target from current_key.
        Never returns a human-only key or the current key.
        """
        self._require_key(current_key)
        if percentage <= 0:
            return None
        if percentage < 100:
            return self._candidate(current_key, IN_PROGRESS)
        recommended = self._candidate(current_key, TEST)
        if recommended is None and current_key == NOT_STARTED:
            recommended = self._candidate(current_key, IN_PROGRESS)
        return recommended

    def status_info(self, current_label: str, percentage: int = 0) -> StatusInfo:
        key = self.key_for(current_label)
        recommended = self.recommend(key, percentage)
        return StatusInfo(
            current=current_label,
            available=self.allowed_labels(key),
            recommended=self.label_for(recommended) if recommended else None,
        )

    @property
    def not_started_label(self) -> str:
        return self.label_for(NOT_STARTED)

    @property
    def default_label(self) -> str:
        return self.label_for(self.config.default_status)
