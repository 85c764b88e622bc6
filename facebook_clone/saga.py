# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

"""
Sequential multi-step writes with explicit compensation.

Steps run in order; the first failure stops the run and the compensations of
the steps that already completed run in reverse. A step without a
compensation is an accepted inconsistency: it stays applied and the caller
gets the error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

SagaContext = Dict[str, Any]


@dataclass
class SagaStep:
    name: str
    action: Callable[[SagaContext], Any]
    compensation: Optional[Callable[[SagaContext], None]] = None


@dataclass
class SagaResult:
    context: SagaContext
    completed: List[str] = field(default_factory=list)
    failed_step: Optional[str] = None
    error: Optional[Exception] = None
    compensated: List[str] = field(default_factory=list)
    compensation_errors: Dict[str, Exception] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.error is None


class Saga:
    def __init__(self, name: str):
        self.name = name
        self.steps: List[SagaStep] = []

    def step(
        self,
        name: str,
        action: Callable[[SagaContext], Any],
        compensation: Optional[Callable[[SagaContext], None]] = None,
    ) -> "Saga":
        self.steps.append(SagaStep(name, action, compensation))
        return self

    def run(self, context: Optional[SagaContext] = None) -> SagaResult:
        """Run the steps; each step's return value is stored in the context under its name."""
        result = SagaResult(context=dict(context or {}))
        done: List[SagaStep] = []
        for step in self.steps:
            try:
                result.context[step.name] = step.action(result.context)
            except Exception as e:
                logger.warning("%s: step %r failed: %s", self.name, step.name, e)
                result.failed_step = step.name
                result.error = e
                self._compensate(done, result)
                return result
            done.append(step)
            result.completed.append(step.name)
        return result

    def _compensate(self, done: List[SagaStep], result: SagaResult) -> None:
        for step in reversed(done):
            if step.compensation is None:
                continue
            try:
                step.compensation(result.context)
                result.compensated.append(step.name)
            except Exception as e:
                # Left in place; nothing retries it.
                logger.error("%s: compensation for %r failed: %s", self.name, step.name, e)
                result.compensation_errors[step.name] = e
