"""
CPU backend for the parameter bootstrap.

Runs replicates strictly in sequence: resample (or take the next
ingested model), estimate, record in the ledger. After the last
replicate the ledger is summarized once and the per-slot means are
unpacked into the representative model (the first one produced).

Any failure aborts the run; no replicate is retried or skipped.
"""

from __future__ import annotations

import logging

import numpy as np

from phyloboot.bootstrap._common import BootParams
from phyloboot.bootstrap._estimate import ReplicateEstimator, dump_path
from phyloboot.bootstrap._ledger import ParameterLedger
from phyloboot.bootstrap._resample import Resampler
from phyloboot.bootstrap._summary import average_model, summarize
from phyloboot.bootstrap.design import BootstrapDesign
from phyloboot.core.compute.timing import Timer
from phyloboot.core.result import Result
from phyloboot.phylo.alignment import write_ss

logger = logging.getLogger(__name__)


class CPUBootstrapBackend:
    """
    Single-threaded bootstrap driver.

    One generator, seeded from design.seed, supplies every random draw
    of the run (simulation, resampling and random initialization).
    """

    @property
    def name(self) -> str:
        return 'cpu_bootstrap'

    def solve(self, design: BootstrapDesign) -> Result[BootParams]:
        """Run all replicates and return Result[BootParams]."""
        timer = Timer()
        timer.start()

        rng = np.random.default_rng(design.seed)
        ledger = ParameterLedger()

        with timer.section('replicates'):
            if design.kind == 'ingest':
                representative = self._ingest(design, ledger)
            else:
                representative = self._generate(design, ledger, rng, timer)

        rows: tuple = ()
        average = None
        estimates = None
        if design.estimate:
            with timer.section('summary'):
                rows = tuple(summarize(ledger))
                average = average_model(list(rows), representative)
            estimates = ledger.estimates()

        timer.stop()

        params = BootParams(
            n_reps=design.n_reps,
            estimates=estimates,
            descriptions=tuple(ledger.descriptions or ()),
            rows=rows,
            average_model=average,
        )

        return Result(
            params=params,
            info={
                'mode': design.kind,
                'n_reps': design.n_reps,
                'n_sites': design.n_sites,
                'n_params': ledger.n_params,
                'estimate': design.estimate,
            },
            timing=timer.result(),
            backend_name=self.name,
        )

    def _ingest(self, design: BootstrapDesign, ledger: ParameterLedger):
        """Read parameter vectors back from externally fitted models."""
        estimator = ReplicateEstimator(None, None, rng=None)
        representative = None
        for model, source in zip(design.source.models, design.source.names):
            params, model = estimator.ingest(model, source)
            ledger.record(params, model)
            if representative is None:
                representative = model.copy()
        return representative

    def _generate(
        self,
        design: BootstrapDesign,
        ledger: ParameterLedger,
        rng: np.random.Generator,
        timer: Timer,
    ):
        """Resample and (optionally) fit every replicate."""
        resampler = Resampler(design.source, design.n_sites, rng)
        estimator = ReplicateEstimator(
            design.fit, design.tree, rng, dump_models=design.dump_models,
        )
        representative = None

        for rep in range(1, design.n_reps + 1):
            with timer.section('resampling'):
                alignment = resampler.draw()

            if design.dump_samples is not None:
                path = dump_path(design.dump_samples, rep, 'ss')
                logger.info("Dumping alignment to %s...", path)
                with open(path, 'w') as f:
                    write_ss(alignment, f)

            if not design.estimate:
                continue

            logger.info(
                "Estimating model for replicate %d of %d...", rep, design.n_reps,
            )
            with timer.section('estimation'):
                params, model = estimator.fit(alignment, rep)
            ledger.record(params, model)
            if representative is None:
                representative = model

        return representative
