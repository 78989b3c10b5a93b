"""Bucketed time series of scalar reductions.

Layer 3: Tasks - User intent translation.
"""

import logging
from collections.abc import Callable
from typing import Mapping, Optional, Sequence

import pandas as pd

from rastersmith.objects.region import TimeWindow
from rastersmith.objects.results import TimeSeriesRecord, as_optional_float
from rastersmith.tasks.expressions import LazyValue

logger = logging.getLogger(__name__)

SubPipeline = Callable[[int, TimeWindow], Mapping[str, LazyValue]]


class TimeSeriesAggregator:
    """Run a per-bucket sub-pipeline and assemble one record per bucket.

    All buckets are evaluated concurrently through the evaluator; records
    come back in bucket order with 1-based indices. Missing values stay
    None, they are never dropped or filled.

    Example:
        >>> def monthly(index, window):
        ...     scenes = loader.load(region.geometry, window)
        ...     mean = scenes.mean().reduce_region("mean", region.geometry, 9000).get()
        ...     return {"salinity": LazyValue.if_nonempty(scenes, mean)}
        >>> buckets = TimeWindow.months(2024, range(1, 7))
        >>> records = TimeSeriesAggregator(evaluator).run(buckets, monthly)
    """

    def __init__(self, evaluator, timeout: Optional[float] = None) -> None:
        self.evaluator = evaluator
        self.timeout = timeout

    def run(self, buckets: Sequence[TimeWindow], sub_pipeline: SubPipeline) -> list[TimeSeriesRecord]:
        """Evaluate ``sub_pipeline(index, window)`` for every bucket.

        Returns:
            Exactly ``len(buckets)`` records with strictly increasing indices.
        """
        plans = [
            (index, window, dict(sub_pipeline(index, window)))
            for index, window in enumerate(buckets, start=1)
        ]
        targets = [value for _, _, values in plans for value in values.values()]
        results = iter(self.evaluator.evaluate_many(targets, timeout=self.timeout))

        records = []
        for index, window, values in plans:
            row = {name: as_optional_float(next(results)) for name in values}
            records.append(TimeSeriesRecord(index=index, window=window, values=row))

        n_null = sum(r.is_null for r in records)
        if n_null:
            logger.warning(f"{n_null} of {len(records)} buckets have no data")
        logger.info(f"Assembled time series with {len(records)} buckets")
        return records

    @staticmethod
    def to_frame(records: Sequence[TimeSeriesRecord], interpolate: bool = False) -> pd.DataFrame:
        """Tabulate records; ``interpolate`` fills interior nulls linearly in the frame only."""
        rows = [
            {
                "index": r.index,
                "start": pd.Timestamp(r.window.start),
                "end": pd.Timestamp(r.window.end),
                **r.values,
            }
            for r in records
        ]
        frame = pd.DataFrame(rows)
        if frame.empty:
            return frame
        frame = frame.set_index("index")
        if interpolate:
            value_columns = [c for c in frame.columns if c not in ("start", "end")]
            frame[value_columns] = frame[value_columns].astype(float).interpolate(limit_area="inside")
        return frame
