from __future__ import annotations

import sys
from pathlib import Path
from typing import List, Optional

import pytest

SRC_PATH = Path(__file__).resolve().parents[1] / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from business_logic.dialog import BotAdapter, BotLogic, TurnContext  # noqa: E402
from foundational_service.contracts.activity import (  # noqa: E402
    Activity,
    ActivityTypes,
    ChannelAccount,
    ConversationAccount,
    ConversationReference,
    ResourceResponse,
)


class RecordingAdapter(BotAdapter):
    """In-memory channel: inbound activities are built locally and replies are collected in `sent`."""

    def __init__(self, *, channel_id: str = "test", conversation_id: str = "conv-1", on_turn_error=None) -> None:
        super().__init__(on_turn_error=on_turn_error)
        self.sent: List[Activity] = []
        self.reference = ConversationReference(
            channel_id=channel_id,
            service_url="https://channel.test",
            conversation=ConversationAccount(id=conversation_id),
            user=ChannelAccount(id="user-1", name="User"),
            bot=ChannelAccount(id="bot", name="Bot"),
        )
        self._next_id = 0

    def make_activity(self, text: Optional[str] = None, activity_type: str = ActivityTypes.MESSAGE) -> Activity:
        activity = Activity(id=f"in-{self._next_id}", type=activity_type, text=text)
        self._next_id += 1
        return activity.apply_conversation_reference(self.reference, is_incoming=True)

    async def send(
        self,
        text: Optional[str],
        logic: BotLogic,
        *,
        activity_type: str = ActivityTypes.MESSAGE,
    ) -> TurnContext:
        context = TurnContext(self, self.make_activity(text, activity_type))
        await self.run_pipeline(context, logic)
        return context

    async def send_activities(self, context: TurnContext, activities: List[Activity]) -> List[ResourceResponse]:
        self.sent.extend(activities)
        return [ResourceResponse(id=f"out-{len(self.sent)}-{index}") for index, _ in enumerate(activities)]

    async def update_activity(self, context: TurnContext, activity: Activity) -> Optional[ResourceResponse]:
        raise NotImplementedError("RecordingAdapter.update_activity()")

    async def delete_activity(self, context: TurnContext, reference: ConversationReference) -> None:
        raise NotImplementedError("RecordingAdapter.delete_activity()")

    def texts(self) -> List[str]:
        return [activity.text or "" for activity in self.sent if activity.type == ActivityTypes.MESSAGE]

    def take_texts(self) -> List[str]:
        texts = self.texts()
        self.sent.clear()
        return texts


@pytest.fixture()
def adapter() -> RecordingAdapter:
    return RecordingAdapter()


@pytest.fixture(autouse=True)
def _isolated_log_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ACCESS_BOT_LOG_ROOT", str(tmp_path / "logs"))
