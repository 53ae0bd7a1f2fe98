"""
Prediction Run Orchestrator

Executes one prediction run for one property:

    LOADING -> EXECUTING -> PERSISTING -> COMPLETE

with FAILED reachable from LOADING and PERSISTING on whole-run faults.

LOADING reads the property, its snapshots and both reference tables in
one pass. EXECUTING evaluates every field rule against the same
read-only context; a rule that raises is logged and its field omitted.
PERSISTING writes all predictions as one batch under the run id and
back-fills missing coordinates. Persistence is serialised per property.
"""

from __future__ import annotations

import logging
import threading
import uuid
import weakref
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Final, Iterable, Optional

from core.evidence import EvidenceSet, collect_evidence
from core.models import PropertyRecord
from core.reference import ClimateFactorTable, LifespanTable, resolve_climate_zone
from core.store.base import PredictionStore, PropertyNotFoundError, StoreError
from .confidence import ConfidenceCalculator
from .models import Prediction, RuleOutcome
from .rules import FieldRule, RuleContext, default_rules


logger = logging.getLogger(__name__)


DEFAULT_MODEL_VERSION: Final[str] = "rules_v1.0"


class RunState(Enum):
    """Lifecycle of a prediction run."""
    LOADING = "loading"
    EXECUTING = "executing"
    PERSISTING = "persisting"
    COMPLETE = "complete"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (RunState.COMPLETE, RunState.FAILED)


@dataclass
class RunResult:
    """Outcome of one run. predictions is empty unless state is COMPLETE."""
    run_id: str
    address_id: str
    model_version: str
    state: RunState = RunState.LOADING
    predictions: list[Prediction] = field(default_factory=list)
    failed_fields: dict[str, str] = field(default_factory=dict)
    error: Optional[str] = None
    property_missing: bool = False
    coordinates_backfilled: bool = False
    climate_zone: Optional[str] = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None

    @property
    def succeeded(self) -> bool:
        return self.state is RunState.COMPLETE

    def to_dict(self) -> dict:
        return {
            "run_id": self.run_id,
            "address_id": self.address_id,
            "model_version": self.model_version,
            "state": self.state.value,
            "prediction_count": len(self.predictions),
            "predictions": [p.to_dict() for p in self.predictions],
            "failed_fields": dict(self.failed_fields),
            "error": self.error,
            "coordinates_backfilled": self.coordinates_backfilled,
            "climate_zone": self.climate_zone,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }


@dataclass(frozen=True)
class _LoadedInputs:
    property: PropertyRecord
    evidence: EvidenceSet
    lifespans: LifespanTable
    climate_factors: ClimateFactorTable


class PredictionRunOrchestrator:
    """
    Runs the field rules for a property and persists the results.

    Rules have no data dependencies on each other; with max_workers > 1
    they are evaluated on a thread pool over the shared read-only context.
    """

    def __init__(
        self,
        store: PredictionStore,
        rules: Optional[Iterable[FieldRule]] = None,
        model_version: str = DEFAULT_MODEL_VERSION,
        max_workers: int = 1,
        reference_date: date = None,
    ):
        """
        Initialize orchestrator.

        Args:
            store: Storage for inputs and predictions
            rules: Field rules to evaluate (default: the six standard rules)
            model_version: Version tag written on every prediction
            max_workers: Threads used to evaluate rules (1 = sequential)
            reference_date: "Today" for age and recency (default: date of each run)
        """
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self._store = store
        self._rules = tuple(rules) if rules is not None else default_rules()
        self._model_version = model_version
        self._max_workers = max_workers
        self._reference_date = reference_date
        # Entries vanish once no run holds the lock
        self._locks: weakref.WeakValueDictionary[str, threading.Lock] = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    @property
    def model_version(self) -> str:
        return self._model_version

    def _address_lock(self, address_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(address_id)
            if lock is None:
                lock = self._locks[address_id] = threading.Lock()
            return lock

    # =========================================================================
    # Run
    # =========================================================================

    def run(self, address_id: str) -> RunResult:
        """
        Execute a complete prediction run.

        Never raises for store or rule faults: the returned RunResult is
        COMPLETE, or FAILED with error set and nothing persisted.

        Args:
            address_id: Property to predict for

        Returns:
            RunResult for the new run
        """
        result = RunResult(
            run_id=str(uuid.uuid4()),
            address_id=address_id,
            model_version=self._model_version,
        )
        logger.info("Run %s started for %s", result.run_id, address_id)

        # LOADING
        try:
            inputs = self._load(address_id)
        except PropertyNotFoundError as e:
            result.property_missing = True
            return self._fail(result, str(e))
        except (StoreError, ValueError) as e:
            return self._fail(result, f"Could not load inputs: {e}")

        # EXECUTING
        result.state = RunState.EXECUTING
        calculator = ConfidenceCalculator(reference_date=self._reference_date)
        region = inputs.property.standardized_region_code or inputs.evidence.region_code
        climate_zone = resolve_climate_zone(region)
        result.climate_zone = climate_zone
        context = RuleContext(
            property=inputs.property,
            evidence=inputs.evidence,
            climate_zone=climate_zone,
            lifespans=inputs.lifespans,
            climate_factors=inputs.climate_factors,
            calculator=calculator,
        )
        outcomes = self._execute(context, result)

        # PERSISTING
        result.state = RunState.PERSISTING
        created_at = datetime.now(timezone.utc)
        predictions = [
            Prediction.from_outcome(
                outcome, address_id, result.run_id, self._model_version, created_at
            )
            for outcome in outcomes
        ]
        with self._address_lock(address_id):
            try:
                self._store.insert_predictions(predictions)
            except StoreError as e:
                return self._fail(result, f"Could not persist predictions: {e}")
            result.coordinates_backfilled = self._backfill(inputs)

        result.predictions = predictions
        result.state = RunState.COMPLETE
        result.finished_at = datetime.now(timezone.utc)
        logger.info(
            "Run %s complete for %s: %d predictions, %d failed fields",
            result.run_id, address_id, len(predictions), len(result.failed_fields),
        )
        return result

    def _load(self, address_id: str) -> _LoadedInputs:
        record = self._store.load_property(address_id)
        snapshots = self._store.load_snapshots(address_id)
        lifespans = LifespanTable(self._store.load_lifespan_entries())
        factors = ClimateFactorTable(self._store.load_climate_factors())
        evidence = collect_evidence(snapshots)
        logger.debug(
            "Loaded %d snapshots for %s (providers used: %s)",
            len(snapshots), address_id, ", ".join(evidence.providers_used) or "none",
        )
        return _LoadedInputs(record, evidence, lifespans, factors)

    def _execute(self, context: RuleContext, result: RunResult) -> list[RuleOutcome]:
        def evaluate(rule: FieldRule) -> tuple[FieldRule, Optional[RuleOutcome], Optional[Exception]]:
            try:
                return rule, rule.predict(context), None
            except Exception as e:  # isolate one field's fault from its siblings
                return rule, None, e

        if self._max_workers > 1:
            with ThreadPoolExecutor(max_workers=self._max_workers) as executor:
                evaluated = list(executor.map(evaluate, self._rules))
        else:
            evaluated = [evaluate(rule) for rule in self._rules]

        outcomes = []
        for rule, outcome, error in evaluated:
            if error is not None:
                logger.error(
                    "Rule for %s failed on %s: %s",
                    rule.field.value, result.address_id, error,
                    exc_info=error,
                )
                result.failed_fields[rule.field.value] = f"{type(error).__name__}: {error}"
                continue
            outcomes.append(outcome)
        return outcomes

    def _backfill(self, inputs: _LoadedInputs) -> bool:
        if inputs.property.has_coordinates:
            return False
        coordinates = inputs.evidence.coordinates
        if coordinates is None:
            return False
        latitude, longitude = coordinates
        try:
            self._store.backfill_coordinates(inputs.property.address_id, latitude, longitude)
        except StoreError as e:
            # Predictions are already stored; the next run retries
            logger.warning("Coordinate back-fill failed for %s: %s", inputs.property.address_id, e)
            return False
        return True

    def _fail(self, result: RunResult, message: str) -> RunResult:
        result.state = RunState.FAILED
        result.error = message
        result.predictions = []
        result.finished_at = datetime.now(timezone.utc)
        logger.error("Run %s failed for %s: %s", result.run_id, result.address_id, message)
        return result
