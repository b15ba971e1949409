"""
Decorators for defining workflows.

A workflow is a class whose instances hold the state of one execution. The
class declares:
- exactly one @entrypoint coroutine, invoked once per instance by the host
- any number of @signal handlers, delivered by the host while it runs
- any number of @query handlers, plain functions that read state
"""

import inspect
import traceback
from typing import Any, Callable, Dict, Optional

from loguru import logger

from approvalflow.core.context import WorkflowContext, set_current_context
from approvalflow.core.registry import WorkflowDefinition, register_workflow
from approvalflow.engine.events import (
    create_workflow_completed_event,
    create_workflow_failed_event,
)
from approvalflow.serialization.encoder import serialize


def workflow(
    name: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Callable:
    """
    Class decorator registering a durable workflow definition.

    Args:
        name: Workflow type name used for untyped starts (defaults to class name)
        metadata: Optional metadata dictionary

    Example:
        @workflow(name="HelloWorldWorkflow")
        class HelloWorldWorkflow:
            @entrypoint()
            async def get_greeting(self, name: str) -> str:
                ...

            @signal()
            def approve(self) -> None:
                ...

            @query(name="currentState")
            def current_state(self) -> str:
                ...
    """
    # Support bare @workflow
    if isinstance(name, type):
        return workflow()(name)

    def decorator(cls: type) -> type:
        workflow_name = name or cls.__name__
        entrypoints = []
        signals: Dict[str, str] = {}
        queries: Dict[str, str] = {}
        validator = None

        for attr_name in dir(cls):
            member = getattr(cls, attr_name, None)
            if not callable(member):
                continue
            if getattr(member, "__workflow_entrypoint__", False):
                entrypoints.append(attr_name)
                validator = getattr(member, "__entrypoint_validator__", None)
            signal_name = getattr(member, "__signal_name__", None)
            if signal_name:
                signals[signal_name] = attr_name
            query_name = getattr(member, "__query_name__", None)
            if query_name:
                queries[query_name] = attr_name

        if len(entrypoints) != 1:
            raise TypeError(
                f"Workflow {cls.__name__} must declare exactly one @entrypoint method, "
                f"found {len(entrypoints)}"
            )

        definition = WorkflowDefinition(
            name=workflow_name,
            cls=cls,
            entrypoint=entrypoints[0],
            signals=signals,
            queries=queries,
            validator=validator,
            metadata=metadata or {},
        )
        register_workflow(definition)

        cls.__workflow__ = True
        cls.__workflow_name__ = workflow_name
        cls.__workflow_definition__ = definition
        return cls

    return decorator


def entrypoint(validator: Optional[Callable[..., None]] = None) -> Callable:
    """
    Mark the coroutine method the host invokes to run an instance.

    Args:
        validator: Optional callable receiving the start arguments; it raises
            InvalidInput to reject a start request before the instance exists.
    """

    def decorator(func: Callable) -> Callable:
        if not inspect.iscoroutinefunction(func):
            raise TypeError(f"@entrypoint {func.__name__} must be an async method")
        func.__workflow_entrypoint__ = True
        func.__entrypoint_validator__ = validator
        return func

    return decorator


def signal(name: Optional[str] = None) -> Callable:
    """Mark a method as a signal handler. Handlers may be sync or async."""

    def decorator(func: Callable) -> Callable:
        func.__signal_name__ = name or func.__name__
        return func

    return decorator


def query(name: Optional[str] = None) -> Callable:
    """
    Mark a method as a query handler.

    Queries must answer immediately, so coroutine methods are rejected.
    """

    def decorator(func: Callable) -> Callable:
        if inspect.iscoroutinefunction(func):
            raise TypeError(f"@query {func.__name__} must be a plain method, not async")
        func.__query_name__ = name or func.__name__
        return func

    return decorator


def get_definition(cls: type) -> WorkflowDefinition:
    definition = getattr(cls, "__workflow_definition__", None)
    if definition is None:
        raise ValueError(
            f"Class {cls.__name__} is not registered as a workflow. "
            f"Did you forget the @workflow decorator?"
        )
    return definition


async def execute_workflow_with_context(
    instance: Any,
    definition: WorkflowDefinition,
    ctx: WorkflowContext,
    args: tuple,
    kwargs: dict,
) -> Any:
    """
    Run an instance's entry point with its context installed.

    Records the terminal event and re-raises any failure unchanged.

    Args:
        instance: The workflow object holding instance state
        definition: Definition of the instance's workflow class
        ctx: Execution context for this instance
        args: Positional arguments for the entry point
        kwargs: Keyword arguments for the entry point

    Returns:
        Entry point result
    """
    set_current_context(ctx)
    log = logger.bind(instance_id=ctx.instance_id, workflow_name=definition.name)

    try:
        log.info(f"Executing workflow: {definition.name}")

        entry = getattr(instance, definition.entrypoint)
        try:
            result = await entry(*args, **kwargs)
        finally:
            ctx.closed = True

        await ctx.storage.record_event(
            create_workflow_completed_event(ctx.instance_id, serialize(result))
        )
        log.info(f"Workflow completed: {definition.name}")
        return result

    except Exception as e:
        error_type = getattr(e, "error_type", None) or type(e).__name__
        log.error(
            f"Workflow failed: {definition.name}",
            error=str(e),
            error_type=error_type,
        )
        await ctx.storage.record_event(
            create_workflow_failed_event(
                instance_id=ctx.instance_id,
                error=str(e),
                error_type=error_type,
                traceback=traceback.format_exc(),
            )
        )
        raise

    finally:
        set_current_context(None)
