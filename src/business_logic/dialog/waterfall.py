from __future__ import annotations

"""Waterfall dialogs: a fixed sequence of async steps sharing a values bag."""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from business_logic.dialog.dialogs import (
    Dialog,
    DialogContext,
    DialogReason,
    DialogTurnResult,
)
from business_logic.dialog.errors import DialogError, WaterfallStepError
from foundational_service.contracts.activity import ActivityTypes

__all__ = ["WaterfallDialog", "WaterfallStep", "WaterfallStepContext"]

log = logging.getLogger(__name__)

WaterfallStep = Callable[["WaterfallStepContext"], Awaitable[DialogTurnResult]]

_OPTIONS = "options"
_VALUES = "values"
_STEP_INDEX = "step_index"


class WaterfallStepContext(DialogContext):
    """Dialog context handed to a single waterfall step."""

    def __init__(
        self,
        parent: WaterfallDialog,
        dialog_context: DialogContext,
        options: Any,
        values: Dict[str, Any],
        index: int,
        reason: DialogReason,
        result: Any = None,
    ) -> None:
        super().__init__(
            dialog_context.dialogs,
            dialog_context.context,
            dialog_context.state,
            parent=dialog_context.parent,
        )
        self._wf_parent = parent
        self._next_called = False
        self.options = options
        self.values = values
        self.index = index
        self.reason = reason
        self.result = result

    async def next(self, result: Any = None) -> DialogTurnResult:
        """Skip to the following step, handing it `result`."""

        if self._next_called:
            raise DialogError(f"WaterfallStepContext.next(): method already called for step {self.index}")
        self._next_called = True
        return await self._wf_parent.resume_dialog(self, DialogReason.NEXT_CALLED, result)


class WaterfallDialog(Dialog):
    def __init__(self, dialog_id: str, steps: Optional[Sequence[WaterfallStep]] = None) -> None:
        super().__init__(dialog_id)
        self._steps: List[WaterfallStep] = []
        for step in steps or ():
            self.add_step(step)

    def add_step(self, step: WaterfallStep) -> "WaterfallDialog":
        if not callable(step):
            raise TypeError("WaterfallDialog.add_step(): step must be callable")
        self._steps.append(step)
        return self

    @property
    def steps(self) -> List[WaterfallStep]:
        return list(self._steps)

    async def begin_dialog(self, dialog_context: DialogContext, options: Any = None) -> DialogTurnResult:
        state = dialog_context.active_dialog.state
        state[_OPTIONS] = options
        state[_VALUES] = {}
        return await self.run_step(dialog_context, 0, DialogReason.BEGIN_CALLED, None)

    async def continue_dialog(self, dialog_context: DialogContext) -> DialogTurnResult:
        # Only a message can answer the step that is waiting.
        if dialog_context.context.activity.type != ActivityTypes.MESSAGE:
            return Dialog.end_of_turn
        return await self.resume_dialog(dialog_context, DialogReason.CONTINUE_CALLED, dialog_context.context.activity.text)

    async def resume_dialog(
        self,
        dialog_context: DialogContext,
        reason: DialogReason,
        result: Any = None,
    ) -> DialogTurnResult:
        state = dialog_context.active_dialog.state
        return await self.run_step(dialog_context, state[_STEP_INDEX] + 1, reason, result)

    async def run_step(
        self,
        dialog_context: DialogContext,
        index: int,
        reason: DialogReason,
        result: Any,
    ) -> DialogTurnResult:
        if index >= len(self._steps):
            return await dialog_context.end_dialog(result)

        state = dialog_context.active_dialog.state
        state[_STEP_INDEX] = index
        step_context = WaterfallStepContext(
            self,
            dialog_context,
            state[_OPTIONS],
            state[_VALUES],
            index,
            reason,
            result,
        )
        step = self._steps[index]
        log.debug(
            "waterfall.step",
            extra={"dialog_id": self.id, "step": getattr(step, "__name__", repr(step)), "status": reason.value},
        )
        turn_result = await step(step_context)
        if not isinstance(turn_result, DialogTurnResult):
            raise WaterfallStepError(
                f"{self.id}: step {index} ({getattr(step, '__name__', step)!r}) did not return a DialogTurnResult"
            )
        return turn_result
