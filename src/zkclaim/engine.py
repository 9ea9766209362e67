"""Local proving strategy on top of a pluggable proof engine.

The engine is a third-party module named in config (`engine.module`) and is
imported lazily on first use. It is consumed as a black box through these
calls, each of which may be a plain function or a coroutine:

    module.load_engine(environment)               -> EngineHandle
    handle.init(options)                          -> sdk
    sdk.get_blueprint(blueprint_id)               -> Blueprint
    blueprint.create_prover(options)              -> Prover
    handle.init_aux_runtime()                     -> aux runtime
    prover.generate_proof(text, inputs, aux)      -> Proof
    blueprint.verify_proof(proof, aux)            -> verification outcome

Instead of patching process globals before the engine loads, the pipeline
hands it an explicit EngineEnvironment describing the runtime it expects.
"""
from __future__ import annotations

import asyncio
import functools
import importlib
import inspect
import logging
from dataclasses import dataclass, field
from types import ModuleType
from typing import Any, Callable

from zkclaim.errors import ClaimError, EngineError, EngineUnavailableError
from zkclaim.models import ProofResult, ProvingMode, ProvingRequest, Step

logger = logging.getLogger(__name__)

DEFAULT_CONDUCTOR_URL = "https://dev-conductor.zk.email"

StepHook = Callable[[Step], None]


@dataclass(frozen=True)
class EngineEnvironment:
    """Runtime descriptor satisfying the engine's declared requirements."""

    node_env: str = "development"
    runtime_version: str = "v18.0.0"
    env: dict = field(default_factory=dict)
    logging_enabled: bool = True
    log_level: str = "debug"


def import_engine(module_name: str | None) -> ModuleType:
    """Import the configured engine module or raise EngineUnavailableError."""
    if not module_name:
        raise EngineUnavailableError(
            "No local proof engine configured (set engine.module or ZKCLAIM_ENGINE_MODULE)"
        )
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise EngineUnavailableError(f"Proof engine '{module_name}' is not installed") from exc
    if not callable(getattr(module, "load_engine", None)):
        raise EngineUnavailableError(f"Proof engine '{module_name}' has no load_engine()")
    return module


async def call_engine(fn: Callable[..., Any], *args: Any) -> Any:
    """Invoke an engine callable without blocking the event loop.

    Coroutine functions are awaited directly; plain callables run in the
    default executor. An awaitable returned by a plain callable is awaited.
    """
    if inspect.iscoroutinefunction(fn):
        return await fn(*args)
    loop = asyncio.get_running_loop()
    result = await loop.run_in_executor(None, functools.partial(fn, *args))
    if inspect.isawaitable(result):
        result = await result
    return result


class LocalProver:
    """Runs the local path from engine load through off-chain verification."""

    def __init__(
        self,
        module_name: str | None = None,
        *,
        module: ModuleType | Any = None,
        conductor_url: str = DEFAULT_CONDUCTOR_URL,
        environment: EngineEnvironment | None = None,
    ):
        self.module_name = module_name
        self._module = module
        self.conductor_url = conductor_url
        self.environment = environment or EngineEnvironment()
        self._handle: Any = None

    async def _load(self) -> Any:
        # Loading is slow on first use only; the handle is reused afterwards.
        if self._handle is not None:
            return self._handle
        module = self._module
        if module is None:
            loop = asyncio.get_running_loop()
            module = await loop.run_in_executor(None, import_engine, self.module_name)
            self._module = module
        self._handle = await call_engine(module.load_engine, self.environment)
        return self._handle

    async def prove(self, request: ProvingRequest, on_step: StepHook) -> ProofResult:
        step = Step.LOAD_ENGINE
        try:
            on_step(step)
            handle = await self._load()

            step = Step.INIT_ENGINE
            on_step(step)
            sdk = await call_engine(handle.init, {
                "base_url": self.conductor_url,
                "logging": {
                    "enabled": self.environment.logging_enabled,
                    "level": self.environment.log_level,
                },
            })

            step = Step.FETCH_BLUEPRINT
            on_step(step)
            blueprint = await call_engine(sdk.get_blueprint, request.blueprint_id)

            step = Step.CREATE_PROVER
            on_step(step)
            prover = await call_engine(blueprint.create_prover, {"is_local": True})

            step = Step.INIT_AUX_RUNTIME
            on_step(step)
            aux_runtime = await call_engine(handle.init_aux_runtime)

            step = Step.GENERATE_PROOF
            on_step(step)
            external_inputs = [{"name": "command", "value": request.command}]
            proof = await call_engine(
                prover.generate_proof, request.artifact_text(), external_inputs, aux_runtime
            )

            step = Step.VERIFY_PROOF
            on_step(step)
            verification = await call_engine(blueprint.verify_proof, proof, aux_runtime)
        except ClaimError:
            raise
        except Exception as e:
            logger.debug("Engine call failed at %s", step, exc_info=True)
            raise EngineError(str(e) or type(e).__name__, step=step.value) from e

        logger.info("Local proof generated and verified (blueprint %s)", request.blueprint_id)
        return ProofResult(proof=proof, verification=verification, mode=ProvingMode.LOCAL)
