from __future__ import annotations

"""Dialog stack primitives: dialogs, dialog sets, dialog contexts and component dialogs.

A conversation's dialog stack lives in `DialogState` and is persisted between turns through a
`StatePropertyAccessor`. The instance on top of the stack receives the next inbound activity; a
dialog that finishes pops itself and hands its result to the instance below it.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from business_logic.dialog.errors import DialogError, DialogNotFoundError
from business_logic.dialog.state import StatePropertyAccessor, state_type
from business_logic.dialog.turn_context import TurnContext

if TYPE_CHECKING:
    from business_logic.dialog.prompts import PromptOptions

__all__ = [
    "ComponentDialog",
    "Dialog",
    "DialogContext",
    "DialogInstance",
    "DialogReason",
    "DialogSet",
    "DialogState",
    "DialogTurnResult",
    "DialogTurnStatus",
]

log = logging.getLogger(__name__)


class DialogTurnStatus(str, Enum):
    EMPTY = "empty"
    WAITING = "waiting"
    COMPLETE = "complete"
    CANCELLED = "cancelled"


class DialogReason(str, Enum):
    BEGIN_CALLED = "beginCalled"
    CONTINUE_CALLED = "continueCalled"
    END_CALLED = "endCalled"
    REPLACE_CALLED = "replaceCalled"
    CANCEL_CALLED = "cancelCalled"
    NEXT_CALLED = "nextCalled"


@dataclass(slots=True)
class DialogTurnResult:
    status: DialogTurnStatus
    result: Any = None


@state_type
@dataclass(slots=True)
class DialogInstance:
    id: str
    state: Dict[str, Any] = field(default_factory=dict)


@state_type
@dataclass(slots=True)
class DialogState:
    dialog_stack: List[DialogInstance] = field(default_factory=list)


class Dialog(ABC):
    end_of_turn = DialogTurnResult(DialogTurnStatus.WAITING)

    def __init__(self, dialog_id: str) -> None:
        if not dialog_id:
            raise ValueError(f"{type(self).__name__}(): dialog_id is required")
        self.id = dialog_id

    @abstractmethod
    async def begin_dialog(self, dialog_context: "DialogContext", options: Any = None) -> DialogTurnResult:
        """Start the dialog; it has already been pushed onto the stack."""

    async def continue_dialog(self, dialog_context: "DialogContext") -> DialogTurnResult:
        return await dialog_context.end_dialog(None)

    async def resume_dialog(
        self,
        dialog_context: "DialogContext",
        reason: DialogReason,
        result: Any = None,
    ) -> DialogTurnResult:
        return await dialog_context.end_dialog(result)

    async def reprompt_dialog(self, context: TurnContext, instance: DialogInstance) -> None:
        return None

    async def end_dialog(self, context: TurnContext, instance: DialogInstance, reason: DialogReason) -> None:
        return None


class DialogSet:
    """Registry of dialogs addressable by id, optionally bound to a persisted stack."""

    def __init__(self, dialog_state: Optional[StatePropertyAccessor] = None) -> None:
        self._dialog_state = dialog_state
        self._dialogs: Dict[str, Dialog] = {}

    def add(self, dialog: Dialog) -> "DialogSet":
        if not isinstance(dialog, Dialog):
            raise TypeError("DialogSet.add(): dialog must be a Dialog")
        existing = self._dialogs.get(dialog.id)
        if existing is not None and existing is not dialog:
            raise DialogError(f"DialogSet.add(): a different dialog is already registered as {dialog.id!r}")
        self._dialogs[dialog.id] = dialog
        return self

    def find(self, dialog_id: str) -> Optional[Dialog]:
        return self._dialogs.get(dialog_id)

    def __contains__(self, dialog_id: object) -> bool:
        return dialog_id in self._dialogs

    async def create_context(self, turn_context: TurnContext) -> "DialogContext":
        if self._dialog_state is None:
            raise DialogError("DialogSet.create_context(): the set was created without a state accessor")
        state = await self._dialog_state.get(turn_context, DialogState)
        return DialogContext(self, turn_context, state)


class DialogContext:
    """A dialog set bound to one turn and one dialog stack."""

    def __init__(
        self,
        dialog_set: DialogSet,
        turn_context: TurnContext,
        state: DialogState,
        *,
        parent: Optional["DialogContext"] = None,
    ) -> None:
        if dialog_set is None:
            raise TypeError("DialogContext(): dialog_set is required")
        if state is None:
            raise TypeError("DialogContext(): state is required")
        self.dialogs = dialog_set
        self.context = turn_context
        self.state = state
        self.parent = parent

    @property
    def stack(self) -> List[DialogInstance]:
        return self.state.dialog_stack

    @property
    def active_dialog(self) -> Optional[DialogInstance]:
        return self.stack[0] if self.stack else None

    def find_dialog(self, dialog_id: str) -> Optional[Dialog]:
        dialog = self.dialogs.find(dialog_id)
        if dialog is None and self.parent is not None:
            dialog = self.parent.find_dialog(dialog_id)
        return dialog

    def _require_dialog(self, dialog_id: str) -> Dialog:
        dialog = self.find_dialog(dialog_id)
        if dialog is None:
            raise DialogNotFoundError(dialog_id)
        return dialog

    async def begin_dialog(self, dialog_id: str, options: Any = None) -> DialogTurnResult:
        if not dialog_id:
            raise ValueError("DialogContext.begin_dialog(): dialog_id is required")
        dialog = self._require_dialog(dialog_id)
        self.stack.insert(0, DialogInstance(id=dialog_id))
        log.debug("dialog.begin", extra={"dialog_id": dialog_id})
        return await dialog.begin_dialog(self, options)

    async def prompt(self, dialog_id: str, options: "PromptOptions") -> DialogTurnResult:
        if options is None:
            raise ValueError("DialogContext.prompt(): options are required")
        return await self.begin_dialog(dialog_id, options)

    async def continue_dialog(self) -> DialogTurnResult:
        instance = self.active_dialog
        if instance is None:
            return DialogTurnResult(DialogTurnStatus.EMPTY)
        dialog = self._require_dialog(instance.id)
        return await dialog.continue_dialog(self)

    async def end_dialog(self, result: Any = None) -> DialogTurnResult:
        await self._end_active_dialog(DialogReason.END_CALLED)
        instance = self.active_dialog
        if instance is None:
            return DialogTurnResult(DialogTurnStatus.COMPLETE, result)
        dialog = self._require_dialog(instance.id)
        return await dialog.resume_dialog(self, DialogReason.END_CALLED, result)

    async def replace_dialog(self, dialog_id: str, options: Any = None) -> DialogTurnResult:
        await self._end_active_dialog(DialogReason.REPLACE_CALLED)
        return await self.begin_dialog(dialog_id, options)

    async def cancel_all_dialogs(self) -> DialogTurnResult:
        if not self.stack:
            return DialogTurnResult(DialogTurnStatus.EMPTY)
        while self.stack:
            await self._end_active_dialog(DialogReason.CANCEL_CALLED)
        return DialogTurnResult(DialogTurnStatus.CANCELLED)

    async def reprompt_dialog(self) -> None:
        instance = self.active_dialog
        if instance is not None:
            dialog = self._require_dialog(instance.id)
            await dialog.reprompt_dialog(self.context, instance)

    async def _end_active_dialog(self, reason: DialogReason) -> None:
        instance = self.active_dialog
        if instance is None:
            return
        dialog = self.find_dialog(instance.id)
        if dialog is not None:
            await dialog.end_dialog(self.context, instance, reason)
        self.stack.pop(0)
        log.debug("dialog.end", extra={"dialog_id": instance.id, "status": reason.value})


class ComponentDialog(Dialog):
    """A dialog made of other dialogs, with its own inner stack kept inside its instance state."""

    persisted_dialog_state = "dialogs"

    def __init__(self, dialog_id: str) -> None:
        super().__init__(dialog_id)
        self._dialogs = DialogSet()
        self.initial_dialog_id: Optional[str] = None

    def add_dialog(self, dialog: Dialog) -> "ComponentDialog":
        self._dialogs.add(dialog)
        if self.initial_dialog_id is None:
            self.initial_dialog_id = dialog.id
        return self

    def find_dialog(self, dialog_id: str) -> Optional[Dialog]:
        return self._dialogs.find(dialog_id)

    async def begin_dialog(self, dialog_context: DialogContext, options: Any = None) -> DialogTurnResult:
        instance = dialog_context.active_dialog
        if instance is None:
            raise DialogError(f"{type(self).__name__}.begin_dialog(): no active dialog instance for {self.id!r}")
        inner_state = DialogState()
        instance.state[self.persisted_dialog_state] = inner_state
        inner_dc = DialogContext(self._dialogs, dialog_context.context, inner_state, parent=dialog_context)
        turn_result = await self.on_begin_dialog(inner_dc, options)
        if turn_result.status != DialogTurnStatus.WAITING:
            return await self.end_component(dialog_context, turn_result.result)
        return Dialog.end_of_turn

    async def continue_dialog(self, dialog_context: DialogContext) -> DialogTurnResult:
        inner_dc = self._create_inner_dc(dialog_context)
        turn_result = await self.on_continue_dialog(inner_dc)
        if turn_result.status != DialogTurnStatus.WAITING:
            return await self.end_component(dialog_context, turn_result.result)
        return Dialog.end_of_turn

    async def resume_dialog(
        self,
        dialog_context: DialogContext,
        reason: DialogReason,
        result: Any = None,
    ) -> DialogTurnResult:
        # Something was pushed on top of this component and has now ended; re-ask the inner dialog.
        await self.reprompt_dialog(dialog_context.context, dialog_context.active_dialog)
        return Dialog.end_of_turn

    async def reprompt_dialog(self, context: TurnContext, instance: DialogInstance) -> None:
        inner_state = instance.state.get(self.persisted_dialog_state)
        if inner_state is None:
            return
        inner_dc = DialogContext(self._dialogs, context, inner_state)
        await inner_dc.reprompt_dialog()

    async def end_dialog(self, context: TurnContext, instance: DialogInstance, reason: DialogReason) -> None:
        if reason == DialogReason.CANCEL_CALLED:
            inner_state = instance.state.get(self.persisted_dialog_state)
            if inner_state is not None:
                await DialogContext(self._dialogs, context, inner_state).cancel_all_dialogs()

    async def on_begin_dialog(self, inner_dc: DialogContext, options: Any) -> DialogTurnResult:
        if self.initial_dialog_id is None:
            raise DialogError(f"{type(self).__name__}: initial_dialog_id is not set")
        return await inner_dc.begin_dialog(self.initial_dialog_id, options)

    async def on_continue_dialog(self, inner_dc: DialogContext) -> DialogTurnResult:
        return await inner_dc.continue_dialog()

    async def end_component(self, outer_dc: DialogContext, result: Any) -> DialogTurnResult:
        return await outer_dc.end_dialog(result)

    def _create_inner_dc(self, dialog_context: DialogContext) -> DialogContext:
        instance = dialog_context.active_dialog
        if instance is None:
            raise DialogError(f"{type(self).__name__}.continue_dialog(): no active dialog instance for {self.id!r}")
        inner_state = instance.state.get(self.persisted_dialog_state)
        if inner_state is None:
            inner_state = DialogState()
            instance.state[self.persisted_dialog_state] = inner_state
        return DialogContext(self._dialogs, dialog_context.context, inner_state, parent=dialog_context)
