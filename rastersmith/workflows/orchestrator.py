"""
Workflow orchestrator for executing config-driven workflows.

Supports YAML/JSON workflow definitions with steps, dependencies, and
parameters. A workflow may name a config file and inline ``overrides`` that
are merged over it; steps reference earlier results with ``${step}`` or
``${step.attr}`` and configuration values with ``${config.key}``.

Example workflow::

    config: estuary.yaml
    overrides:
      carbon: {fit_scale: 500}
    steps:
      - name: catalog
        type: load_demo_catalog
        params: {seed: 0}
      - name: evaluator
        type: create_evaluator
        params: {catalog: "${catalog}"}
      - name: carbon
        type: carbon_density
      - name: coast
        type: coastline_change
        depends_on: [evaluator]
"""

import inspect
import json
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any, Optional, Union

import pandas as pd
import yaml

from rastersmith.config import ConfigManager, get_config, get_config_value, load_config
from rastersmith.workflows.analyses import CarbonDensityAnalysis, CoastlineChangeAnalysis, SalinityAnalysis
from rastersmith.workflows.executor import Evaluator
from rastersmith.workflows.presentation import LayerSink, NullSink

logger = logging.getLogger(__name__)


# Registry of available workflow steps
STEP_REGISTRY: dict[str, Callable] = {}

_REFERENCE = "${"


def register_step(name: str, func: Callable):
    """Register a function as a workflow step."""
    STEP_REGISTRY[name] = func
    logger.debug(f"Registered workflow step: {name}")


def _load_demo_catalog(seed: int = 0, res: float = 0.02):
    # imported here: rastersmith.data builds on the workflow sources
    from rastersmith.data import load_demo_catalog

    return load_demo_catalog(seed=seed, res=res)


def _create_evaluator(
    catalog=None,
    max_workers: Optional[int] = None,
    timeout: Optional[float] = None,
    config: Optional[ConfigManager] = None,
) -> Evaluator:
    config = config or get_config()
    return Evaluator(
        catalog,
        max_workers=int(max_workers or config.get("execution.max_workers", 4)),
        timeout=timeout if timeout is not None else config.get("execution.timeout_s"),
    )


def _carbon_density(evaluator: Evaluator, config: Optional[ConfigManager] = None, sink: Optional[LayerSink] = None):
    return CarbonDensityAnalysis(evaluator, config, sink).run()


def _coastline_change(evaluator: Evaluator, config: Optional[ConfigManager] = None, sink: Optional[LayerSink] = None):
    return CoastlineChangeAnalysis(evaluator, config, sink).run()


def _salinity(evaluator: Evaluator, config: Optional[ConfigManager] = None, sink: Optional[LayerSink] = None):
    return SalinityAnalysis(evaluator, config, sink).run()


def _save_table(frame: pd.DataFrame, path: Union[str, Path]) -> Path:
    """Write a result table as CSV."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    frame.to_csv(path)
    logger.info(f"Saved {len(frame)} rows to {path}")
    return path


def _register_default_steps():
    """Register default workflow steps."""
    register_step("load_demo_catalog", _load_demo_catalog)
    register_step("create_evaluator", _create_evaluator)
    register_step("carbon_density", _carbon_density)
    register_step("coastline_change", _coastline_change)
    register_step("salinity", _salinity)
    register_step("save_table", _save_table)


# Initialize default steps
_register_default_steps()


class WorkflowOrchestrator:
    """
    Orchestrator for executing config-driven workflows.

    Loads workflow definitions from YAML/JSON and executes steps in
    dependency order. Steps that accept ``config``, ``evaluator`` or ``sink``
    get the orchestrator's own unless the workflow passes them explicitly;
    a step returning an ``Evaluator`` becomes the evaluator of later steps.
    """

    def __init__(
        self,
        config: Optional[ConfigManager] = None,
        evaluator: Optional[Evaluator] = None,
        sink: Optional[LayerSink] = None,
        working_dir: Optional[Union[str, Path]] = None,
    ):
        """
        Initialize workflow orchestrator.

        Parameters
        ----------
        config : ConfigManager, optional
            Configuration manager. If None, uses the package default.
        evaluator : Evaluator, optional
            Evaluator injected into analysis steps.
        sink : LayerSink, optional
            Receiver of analysis layers. If None, layers are discarded.
        working_dir : str or Path, optional
            Working directory for relative paths in workflow
        """
        self.config = config
        self.evaluator = evaluator
        self.sink = sink if sink is not None else NullSink()
        self.working_dir = Path(working_dir) if working_dir else Path.cwd()
        self.results: dict[str, Any] = {}
        self.logger = logging.getLogger(self.__class__.__name__)

    def load_workflow_file(self, file_path: Union[str, Path]) -> dict[str, Any]:
        """
        Load workflow definition from file.

        Raises
        ------
        FileNotFoundError
            If file doesn't exist
        ValueError
            If file format is unsupported or holds no mapping
        """
        file_path = Path(file_path)

        if not file_path.exists():
            raise FileNotFoundError(f"Workflow file not found: {file_path}")

        suffix = file_path.suffix.lower()

        with open(file_path, encoding="utf-8") as f:
            if suffix in (".yaml", ".yml"):
                workflow = yaml.safe_load(f)
            elif suffix == ".json":
                workflow = json.load(f)
            else:
                raise ValueError(
                    f"Unsupported workflow file format: {suffix}. Use .yaml, .yml, or .json"
                )

        if not isinstance(workflow, dict):
            raise ValueError(f"Workflow file {file_path} must hold a mapping")
        self.logger.info(f"Loaded workflow from {file_path}")
        return workflow

    @staticmethod
    def _step_name(step: dict[str, Any], index: int) -> str:
        return step.get("name") or step.get("step") or f"step_{index}"

    @staticmethod
    def _references(value: Any) -> set[str]:
        """Step names referenced anywhere inside a parameter value."""
        if isinstance(value, str) and value.startswith(_REFERENCE) and value.endswith("}"):
            ref = value[2:-1]
            return set() if ref.startswith("config.") else {ref.split(".", 1)[0]}
        if isinstance(value, dict):
            return set().union(*(WorkflowOrchestrator._references(v) for v in value.values()))
        if isinstance(value, list):
            return set().union(*(WorkflowOrchestrator._references(v) for v in value))
        return set()

    def _resolve_dependencies(self, steps: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """
        Order steps so every step runs after the steps it depends on.

        Dependencies are the explicit ``depends_on`` names plus every step
        referenced in the parameters. Independent steps keep file order.

        Raises
        ------
        ValueError
            On duplicate names, unknown dependencies or cycles
        """
        names = [self._step_name(step, i) for i, step in enumerate(steps)]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate step names in workflow: {names}")

        depends: dict[str, set[str]] = {}
        for name, step in zip(names, steps):
            deps = set(step.get("depends_on", [])) | self._references(
                step.get("params", step.get("parameters", {}))
            )
            unknown = deps - set(names)
            if unknown:
                raise ValueError(f"Step '{name}' depends on unknown steps {sorted(unknown)}")
            depends[name] = deps

        ordered: list[dict[str, Any]] = []
        done: set[str] = set()
        pending = list(zip(names, steps))
        while pending:
            ready = [(n, s) for n, s in pending if depends[n] <= done]
            if not ready:
                raise ValueError(f"Circular dependency between steps {[n for n, _ in pending]}")
            name, step = ready[0]
            ordered.append(step)
            done.add(name)
            pending.remove((name, step))
        return ordered

    def _resolve_parameter(self, value: Any, step_name: str) -> Any:
        """
        Resolve parameter value, supporting references to previous steps.

        Parameters
        ----------
        value : any
            Parameter value (may be a reference like "${step_name.attr}")
        step_name : str
            Current step name

        Returns
        -------
        any
            Resolved value
        """
        if not (isinstance(value, str) and value.startswith(_REFERENCE) and value.endswith("}")):
            return value
        ref = value[2:-1]

        # Config reference
        if ref.startswith("config."):
            return get_config_value(ref[len("config."):], config=self.config)

        # Otherwise it's a step reference
        step_ref, _, attr = ref.partition(".")
        if step_ref not in self.results:
            raise ValueError(f"Step '{step_ref}' not found in results (referenced by {value})")
        result = self.results[step_ref]
        if not attr:
            return result
        for part in attr.split("."):
            if isinstance(result, pd.DataFrame) and part in result.columns:
                result = result[part]
            elif isinstance(result, dict) and part in result:
                result = result[part]
            elif hasattr(result, part):
                result = getattr(result, part)
                if callable(result):
                    result = result()
            else:
                raise ValueError(
                    f"Reference {value} not found in step '{step_ref}' of step {step_name}. "
                    f"Result type: {type(result).__name__}"
                )
        return result

    def _resolve_parameters(self, params: dict[str, Any], step_name: str) -> dict[str, Any]:
        """Resolve all parameters in a dictionary."""
        resolved = {}
        for key, value in params.items():
            if isinstance(value, dict):
                resolved[key] = self._resolve_parameters(value, step_name)
            elif isinstance(value, list):
                resolved[key] = [self._resolve_parameter(item, step_name) for item in value]
            else:
                resolved[key] = self._resolve_parameter(value, step_name)
        return resolved

    def _inject(self, func: Callable, params: dict[str, Any], step_name: str) -> dict[str, Any]:
        """Add config, evaluator and sink where the step accepts them."""
        accepted = inspect.signature(func).parameters
        if "config" in accepted and "config" not in params:
            params["config"] = self.config
        if "sink" in accepted and "sink" not in params:
            params["sink"] = self.sink
        if "evaluator" in accepted and "evaluator" not in params:
            if self.evaluator is None:
                raise ValueError(
                    f"Step {step_name} needs an evaluator. Add a 'create_evaluator' step "
                    "or pass one to WorkflowOrchestrator."
                )
            params["evaluator"] = self.evaluator
        return params

    def _execute_step(self, step: dict[str, Any], step_index: int) -> Any:
        """Execute a single workflow step and store its result."""
        step_name = self._step_name(step, step_index)
        step_type = step.get("type") or step.get("function")

        if not step_type:
            raise ValueError(f"Step {step_name} missing 'type' or 'function' field")

        self.logger.info(f"Executing step {step_index + 1}: {step_name} ({step_type})")

        func = STEP_REGISTRY.get(step_type)
        if func is None:
            raise ValueError(f"Unknown step type: {step_type}. Available: {sorted(STEP_REGISTRY)}")

        params = self._resolve_parameters(step.get("params", step.get("parameters", {})) or {}, step_name)
        params = self._inject(func, params, step_name)

        try:
            result = func(**params)
        except Exception as e:
            self.logger.error(f"✗ Step {step_name} failed: {e}")
            raise
        self.results[step_name] = result
        if isinstance(result, Evaluator):
            self.evaluator = result
        self.logger.info(f"✓ Step {step_name} completed successfully")
        return result

    def _load_workflow_config(self, workflow: dict[str, Any]) -> None:
        config_file = workflow.get("config")
        if config_file:
            config_path = Path(config_file)
            if not config_path.is_absolute():
                config_path = self.working_dir / config_path
            if config_path.exists():
                self.config = load_config(config_path)
            else:
                self.logger.warning(f"Config file not found: {config_file}, using defaults")
        if self.config is None:
            self.config = get_config()
        overrides = workflow.get("overrides")
        if overrides:
            self.config = self.config.merge(overrides)

    def execute(self, workflow: dict[str, Any]) -> dict[str, Any]:
        """
        Execute a workflow definition.

        Parameters
        ----------
        workflow : dict
            Workflow definition with 'steps' list

        Returns
        -------
        dict
            Results from all steps, keyed by step name
        """
        self.logger.info("Starting workflow execution")
        self._load_workflow_config(workflow)

        steps = workflow.get("steps", [])
        if not steps:
            raise ValueError("Workflow must contain 'steps' list")

        ordered_steps = self._resolve_dependencies(steps)
        stop_on_error = workflow.get("stop_on_error", True)

        for i, step in enumerate(ordered_steps):
            try:
                self._execute_step(step, i)
            except Exception as e:
                self.logger.error(f"Workflow failed at step {i + 1}: {e}")
                if stop_on_error:
                    raise

        self.logger.info(f"Workflow completed ({len(steps)} steps)")
        return self.results

    def execute_file(self, file_path: Union[str, Path]) -> dict[str, Any]:
        """Load and execute workflow from file."""
        workflow = self.load_workflow_file(file_path)
        return self.execute(workflow)


def run_workflow(
    workflow_file: Union[str, Path],
    config: Optional[ConfigManager] = None,
    evaluator: Optional[Evaluator] = None,
    sink: Optional[LayerSink] = None,
    working_dir: Optional[Union[str, Path]] = None,
) -> dict[str, Any]:
    """
    Convenience function to run a workflow from a file.

    Example
    -------
    >>> from rastersmith.workflows import run_workflow
    >>> results = run_workflow("estuary.yaml")
    >>> results["carbon"].area_frame()
    """
    if working_dir is None:
        working_dir = Path(workflow_file).parent
    orchestrator = WorkflowOrchestrator(config, evaluator, sink, working_dir)
    return orchestrator.execute_file(workflow_file)


def load_workflow(file_path: Union[str, Path]) -> dict[str, Any]:
    """Load workflow definition without executing."""
    return WorkflowOrchestrator().load_workflow_file(file_path)
