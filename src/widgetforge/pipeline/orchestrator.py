"""Pipeline orchestrator for stage execution."""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING

import structlog

from widgetforge.observability.logging import get_logger
from widgetforge.pipeline.config import PipelineConfig
from widgetforge.pipeline.errors import EmptyInputError, NoPreviousRunError, StageError
from widgetforge.pipeline.gates import AutoContinueGate, PreflightGate
from widgetforge.pipeline.run import STAGE_NAMES, PipelineRun, StageFailure
from widgetforge.pipeline.stages import get_stage
from widgetforge.prompts import PromptLoader
from widgetforge.providers.base import DEFAULT_PROVIDER, MissingCredentialError, Provider
from widgetforge.providers.credentials import CredentialResolver
from widgetforge.providers.factory import create_adapters
from widgetforge.providers.fallback import FallbackPolicy

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from widgetforge.observability.llm_logger import LLMLogger
    from widgetforge.pipeline.stages import Stage
    from widgetforge.providers.base import ProviderAdapter

log = get_logger(__name__)


class PipelineOrchestrator:
    """Run the three stages in sequence, one run at a time.

    The orchestrator manages:
    - The re-entrancy guard (a second run while one is in flight is a no-op)
    - Pre-flight credential and gate checks
    - Stage sequencing and per-stage state on the PipelineRun
    - Turning stage errors into the run's terminal failure

    Attributes:
        config: Pipeline configuration.
        credentials: Resolver consulted before each run and on every call.
    """

    def __init__(
        self,
        config: PipelineConfig | None = None,
        credentials: CredentialResolver | None = None,
        *,
        gate: PreflightGate | None = None,
        adapters: Mapping[Provider, ProviderAdapter] | None = None,
        llm_logger: LLMLogger | None = None,
        loader: PromptLoader | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            config: Pipeline configuration. Defaults to built-in defaults.
            credentials: Credential resolver. Defaults to environment only.
            gate: Pre-flight gate. Defaults to AutoContinueGate.
            adapters: Provider adapters to use instead of creating relay
                adapters from the config. Caller keeps ownership.
            llm_logger: Optional logger recording every provider call.
            loader: Prompt template loader. Defaults to bundled templates.
        """
        self.config = config or PipelineConfig()
        self.credentials = credentials or CredentialResolver()
        self._gate = gate or AutoContinueGate()
        self._loader = loader or PromptLoader()

        self._owns_adapters = adapters is None
        if adapters is None:
            adapters = create_adapters(
                self.credentials,
                relay_url=self.config.relay_url,
                timeout=self.config.timeout,
                max_output_tokens=self.config.max_output_tokens,
                models=self.config.configured_models(),
            )
        self._adapters = dict(adapters)
        self._policy = FallbackPolicy(self._adapters, DEFAULT_PROVIDER, llm_logger)

        self._running = False
        self._last_run: PipelineRun | None = None

    @property
    def is_running(self) -> bool:
        """Whether a run is in flight (including its pre-flight checks)."""
        return self._running

    @property
    def current_run(self) -> PipelineRun | None:
        """The in-flight run, if any."""
        if self._last_run is not None and self._last_run.status.is_running:
            return self._last_run
        return None

    @property
    def last_run(self) -> PipelineRun | None:
        """The most recently started run, finished or not."""
        return self._last_run

    async def run(
        self,
        user_input: str,
        provider: Provider = DEFAULT_PROVIDER,
        on_progress: Callable[[PipelineRun], None] | None = None,
    ) -> PipelineRun | None:
        """Run spec drafting, code generation and audit for a widget request.

        Args:
            user_input: Free-text widget request.
            provider: Provider for code generation.
            on_progress: Called with the run after every state change.

        Returns:
            The finished run (COMPLETED or FAILED), or None if another run is
            in flight or the pre-flight gate aborted.

        Raises:
            EmptyInputError: If the input is blank.
            MissingCredentialError: If the default provider, or a non-default
                code generation provider, has no key. No run is started.
        """
        if self._running:
            log.info("pipeline_busy", provider=provider.value)
            return None
        if not user_input.strip():
            raise EmptyInputError()

        # Set before the first await so overlapping calls see it
        self._running = True
        try:
            self._check_credentials(provider)

            decision = await self._gate.before_run(user_input, provider)
            if decision == "abort":
                log.info("pipeline_aborted_by_gate", provider=provider.value)
                return None

            run = PipelineRun(input=user_input, selected_provider=provider)
            self._last_run = run
            with structlog.contextvars.bound_contextvars(run_id=run.run_id):
                await self._execute(run, on_progress)
            return run
        finally:
            self._running = False

    async def retry(
        self,
        provider: Provider | None = None,
        on_progress: Callable[[PipelineRun], None] | None = None,
    ) -> PipelineRun | None:
        """Re-run the last input, optionally with another code generation provider.

        Raises:
            NoPreviousRunError: If no run has been started yet.
        """
        if self._last_run is None:
            raise NoPreviousRunError()
        previous = self._last_run
        return await self.run(
            previous.input, provider or previous.selected_provider, on_progress=on_progress
        )

    def _check_credentials(self, provider: Provider) -> None:
        required = [DEFAULT_PROVIDER]
        if provider is not DEFAULT_PROVIDER:
            required.append(provider)
        for needed in required:
            if not self.credentials.resolve(needed).is_present:
                log.error("credential_missing", provider=needed.value)
                raise MissingCredentialError(
                    needed, f"{needed.display_name} API key not found"
                )

    async def _execute(
        self,
        run: PipelineRun,
        on_progress: Callable[[PipelineRun], None] | None,
    ) -> None:
        def notify() -> None:
            if on_progress is None:
                return
            # Display errors never change the run's outcome
            try:
                on_progress(run)
            except Exception:
                log.exception("progress_callback_failed", status=run.status.value)

        run.start()
        start_time = time.perf_counter()
        log.info("pipeline_start", provider=run.selected_provider.value)

        stage_input = run.input
        try:
            for index, name in STAGE_NAMES.items():
                stage = self._get_stage(name)
                run.begin_stage(index)
                notify()
                log.info("stage_start", stage=name)

                stage_start = time.perf_counter()
                result = await stage.execute(
                    stage_input,
                    self._policy,
                    self.config,
                    self._loader,
                    provider=run.selected_provider,
                )
                run.set_output(index, result.text)
                if index == 2:
                    run.stage2_provider = result.provider
                    run.stage2_model = result.model
                log.info(
                    "stage_complete",
                    stage=name,
                    provider=result.provider.value,
                    model=result.model,
                    attempts=result.attempts,
                    duration=f"{time.perf_counter() - stage_start:.2f}s",
                )
                stage_input = result.text

        except StageError as e:
            run.fail(StageFailure.from_stage_error(e))
            log.error(
                "stage_failed",
                stage=e.stage_name,
                kind=e.kind.value,
                error=str(e.cause),
                status=e.cause.status_code,
            )
            notify()
            return
        except asyncio.CancelledError:
            run.cancel()
            log.warning("pipeline_cancelled", stage=run.completed_stages + 1)
            notify()
            raise
        except Exception as e:
            stage_index = run.current_stage or run.completed_stages + 1
            run.fail(
                StageFailure(
                    stage=stage_index,
                    stage_name=STAGE_NAMES.get(stage_index, "unknown"),
                    kind=None,
                    message=str(e),
                )
            )
            log.error("stage_failed", stage=stage_index, error=str(e), exc_info=True)
            notify()
            return

        run.complete()
        log.info(
            "pipeline_complete",
            stage2_provider=run.stage2_provider.value if run.stage2_provider else None,
            duration=f"{time.perf_counter() - start_time:.2f}s",
        )
        notify()

    def _get_stage(self, name: str) -> Stage:
        stage = get_stage(name)
        if stage is None:
            raise RuntimeError(f"Stage '{name}' is not registered")
        return stage

    async def close(self) -> None:
        """Close adapters created by this orchestrator."""
        if not self._owns_adapters:
            return
        for adapter in self._adapters.values():
            await adapter.close()

    async def __aenter__(self) -> PipelineOrchestrator:
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()


async def run_pipeline(
    user_input: str,
    provider: Provider = DEFAULT_PROVIDER,
    *,
    config: PipelineConfig | None = None,
    credentials: CredentialResolver | None = None,
    gate: PreflightGate | None = None,
    llm_logger: LLMLogger | None = None,
    on_progress: Callable[[PipelineRun], None] | None = None,
) -> PipelineRun | None:
    """Build an orchestrator, run the pipeline once, and close it.

    See ``PipelineOrchestrator.run`` for return values and errors.
    """
    async with PipelineOrchestrator(
        config, credentials, gate=gate, llm_logger=llm_logger
    ) as orchestrator:
        return await orchestrator.run(user_input, provider, on_progress=on_progress)
