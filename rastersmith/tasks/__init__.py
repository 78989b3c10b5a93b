"""Layer 3: Tasks - User intent translation.

Task components turn analysis intent (load a series, composite it, fit a
model, classify, measure areas, compare periods, build a time series) into
lazy graph handles. Nothing here executes; see ``rastersmith.workflows``.
"""

from rastersmith.tasks.accuracytask import AccuracyEvaluator
from rastersmith.tasks.changetask import ChangeDetector, ChangeResult
from rastersmith.tasks.classificationtask import Classifier
from rastersmith.tasks.collectiontask import CollectionLoader
from rastersmith.tasks.compositetask import Compositor
from rastersmith.tasks.expressions import LazyCollection, LazyRaster, LazyValue
from rastersmith.tasks.indextask import IndexComputer
from rastersmith.tasks.masktask import MaskBuilder
from rastersmith.tasks.regressiontask import RegressionInverter
from rastersmith.tasks.timeseriestask import TimeSeriesAggregator
from rastersmith.tasks.zonaltask import ZonalStatistics

__all__ = [
    "AccuracyEvaluator",
    "ChangeDetector",
    "ChangeResult",
    "Classifier",
    "CollectionLoader",
    "Compositor",
    "IndexComputer",
    "LazyCollection",
    "LazyRaster",
    "LazyValue",
    "MaskBuilder",
    "RegressionInverter",
    "TimeSeriesAggregator",
    "ZonalStatistics",
]
