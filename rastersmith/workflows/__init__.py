"""Layer 4: Workflows - Public entry points.

Workflows provide the public entry points users call: the evaluator that
executes lazy graphs, raster sources and the catalog, the presentation
boundary, the three estuary analyses and the YAML workflow orchestrator.
"""

from rastersmith.workflows.analyses import (
    CarbonDensityAnalysis,
    CarbonDensityResult,
    CoastlineChangeAnalysis,
    CoastlineChangeResult,
    SalinityAnalysis,
    SalinityResult,
    month_buckets,
)
from rastersmith.workflows.executor import EvaluationCancelledError, EvaluationFuture, Evaluator
from rastersmith.workflows.orchestrator import (
    STEP_REGISTRY,
    WorkflowOrchestrator,
    load_workflow,
    register_step,
    run_workflow,
)
from rastersmith.workflows.presentation import (
    CollectingSink,
    Layer,
    LayerSink,
    NullSink,
    VisParams,
    area_table,
    records_to_frame,
)
from rastersmith.workflows.sources import (
    InMemorySource,
    NpzDirectorySource,
    RasterSource,
    SourceCatalog,
)

__all__ = [
    "CarbonDensityAnalysis",
    "CarbonDensityResult",
    "CoastlineChangeAnalysis",
    "CoastlineChangeResult",
    "SalinityAnalysis",
    "SalinityResult",
    "month_buckets",
    "EvaluationCancelledError",
    "EvaluationFuture",
    "Evaluator",
    "STEP_REGISTRY",
    "WorkflowOrchestrator",
    "load_workflow",
    "register_step",
    "run_workflow",
    "CollectingSink",
    "Layer",
    "LayerSink",
    "NullSink",
    "VisParams",
    "area_table",
    "records_to_frame",
    "InMemorySource",
    "NpzDirectorySource",
    "RasterSource",
    "SourceCatalog",
]
