"""
Module: materials_engines.rules
Responsibility:
    Alert rule set.  Classifies projected stock, consumption, idleness,
    expiry, price history and blocking results into alert drafts with a
    severity and supporting figures.  Persisting the drafts is the job of
    materials_services.alert_engine.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Time enters only as explicit ``today`` / ``now`` parameters.

Invariants enforced:
    - Comparison directions (< vs <=) are exact decision boundaries.
    - Per project and material, at most one of imminent_stockout,
      stock_minimum or suggested_reorder is produced.
    - A material with no supplier (no lead time) yields no stock alert.
    - Expiry alerts are per batch, so one material may carry several.

Failure modes:
    - ValueError from RuleThresholds on inconsistent threshold values.

Usage:
    rules = AlertRules(RuleThresholds())
    drafts = rules.project_alerts(
        project_id=pid, materials=mats, pending_by_material=pending,
        assignments=links, blocked=blocked, remaining_days=20, today=today,
    )
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from materials_engines.dependencies import BlockingResult
from materials_engines.projection import days_of_stock
from materials_engines.tracer import traced_engine
from materials_kernel.domain.alert_details import (
    AlertDetails,
    BlockedDependencyDetails,
    ConsumptionDeviationDetails,
    ExpiringBatchDetails,
    PriceVariationDetails,
    StagnantStockDetails,
    StockoutDetails,
)
from materials_kernel.domain.dtos import (
    ActivityMaterialSnapshot,
    BatchSnapshot,
    MaterialSnapshot,
    PriceObservation,
)
from materials_kernel.domain.values import AlertType, Severity
from materials_kernel.logging_config import get_logger

logger = get_logger("engines.rules")

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")
_CENT = Decimal("0.01")
_TENTH = Decimal("0.1")


def _round(value: Decimal, exp: Decimal = _CENT) -> Decimal:
    return value.quantize(exp, rounding=ROUND_HALF_UP)


def _fmt(value: Decimal, exp: Decimal = _TENTH) -> str:
    return str(_round(value, exp))


@dataclass(frozen=True)
class RuleThresholds:
    """
    Tunable decision boundaries of the rule set.

    Defaults are the production values.  Ratios are fractions (0.10 = 10%);
    price bands are percentages.
    """

    safety_margin_days: int = 3
    critical_safety_margin_days: int = 5
    reorder_window_days: int = 7
    order_lead_buffer_days: int = 2
    imminent_reorder_factor: Decimal = Decimal("1.3")
    minimum_pending_factor: Decimal = Decimal("0.3")

    deviation_threshold: Decimal = Decimal("0.30")
    deviation_ratio: Decimal = Decimal("1.5")
    deviation_high: Decimal = Decimal("0.40")
    deviation_critical: Decimal = Decimal("0.50")

    stagnant_min_days: int = 30
    stagnant_medium_days: int = 60
    stagnant_high_days: int = 90

    expiry_high_days: int = 7

    price_variation_threshold: Decimal = Decimal("0.10")
    price_medium_pct: Decimal = Decimal("20")
    price_high_pct: Decimal = Decimal("30")

    simulator_reorder_factor: Decimal = Decimal("1.5")
    simulator_warning_ratio: Decimal = Decimal("1.2")
    simulator_critical_ratio: Decimal = Decimal("0.5")

    def __post_init__(self) -> None:
        if not (self.deviation_threshold <= self.deviation_high <= self.deviation_critical):
            raise ValueError(
                "deviation thresholds must satisfy threshold <= high <= critical"
            )
        if not (
            self.stagnant_min_days <= self.stagnant_medium_days <= self.stagnant_high_days
        ):
            raise ValueError("stagnant day bands must be non-decreasing")
        if self.price_medium_pct > self.price_high_pct:
            raise ValueError("price_medium_pct cannot exceed price_high_pct")
        if self.simulator_critical_ratio > 1 or self.simulator_warning_ratio < 1:
            raise ValueError(
                "simulator ratios must satisfy critical <= 1 <= warning"
            )
        for name in (
            "safety_margin_days",
            "critical_safety_margin_days",
            "reorder_window_days",
            "order_lead_buffer_days",
            "expiry_high_days",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} cannot be negative")


@dataclass(frozen=True)
class AlertDraft:
    """An alert ready to be persisted."""

    alert_type: AlertType
    severity: Severity
    message: str
    project_id: UUID | None = None
    material_id: UUID | None = None
    activity_id: UUID | None = None
    days_to_stockout: int | None = None
    suggested_quantity: Decimal | None = None
    suggested_order_date: date | None = None
    details: AlertDetails | None = None


def urgency_level(days: int, lead_time_days: int, is_critical: bool) -> Severity:
    """
    Urgency of a material that lasts ``days`` with the given lead time.

    Monotonically non-increasing in ``days``.  Critical materials double the
    bands above the lead time.
    """
    margin = 2 if is_critical else 1
    if days <= lead_time_days:
        return Severity.CRITICAL
    if days <= lead_time_days + 3 * margin:
        return Severity.HIGH
    if days <= lead_time_days + 7 * margin:
        return Severity.MEDIUM
    return Severity.LOW


class AlertRules:
    """
    The rule set, parameterized by RuleThresholds.

    Contract:
        Every evaluate_* method is pure and returns an AlertDraft or None.
        project_alerts() and global_alerts() apply them in a fixed order.
    """

    def __init__(self, thresholds: RuleThresholds | None = None):
        self.thresholds = thresholds or RuleThresholds()

    def safety_margin(self, is_critical: bool) -> int:
        t = self.thresholds
        return t.critical_safety_margin_days if is_critical else t.safety_margin_days

    # ------------------------------------------------------------------
    # Project-scoped rules
    # ------------------------------------------------------------------

    def evaluate_stock(
        self,
        project_id: UUID,
        material: MaterialSnapshot,
        pending: Decimal,
        remaining_days: int,
        today: date,
    ) -> AlertDraft | None:
        """imminent_stockout, stock_minimum, suggested_reorder or nothing."""
        if material.lead_time_days is None:
            return None

        t = self.thresholds
        lead = material.lead_time_days
        stock = material.stock
        minimum = material.minimum_stock
        safety = self.safety_margin(material.is_critical)
        days = days_of_stock(stock, pending, remaining_days)
        details = StockoutDetails(
            current_stock=stock,
            minimum_stock=minimum,
            pending_consumption=_round(pending),
            days_of_stock=days,
            lead_time_days=lead,
        )
        order_date = today + timedelta(days=max(1, days - lead - t.order_lead_buffer_days))

        if stock < minimum:
            severity = urgency_level(days, lead, material.is_critical)
            if days <= lead + safety:
                return AlertDraft(
                    alert_type=AlertType.IMMINENT_STOCKOUT,
                    severity=Severity.MEDIUM if severity == Severity.LOW else severity,
                    message=(
                        f"Stock of {material.name} is below minimum. Stock-out "
                        f"expected in {days} days against a supplier lead time "
                        f"of {lead} days."
                    ),
                    project_id=project_id,
                    material_id=material.material_id,
                    days_to_stockout=days,
                    suggested_quantity=_round(
                        max(_ZERO, pending * t.imminent_reorder_factor - stock)
                    ),
                    suggested_order_date=order_date,
                    details=details,
                )
            return AlertDraft(
                alert_type=AlertType.STOCK_MINIMUM,
                severity=severity,
                message=(
                    f"Stock of {material.name} is below the configured minimum. "
                    f"Consider replenishing."
                ),
                project_id=project_id,
                material_id=material.material_id,
                days_to_stockout=days,
                suggested_quantity=_round(minimum - stock + pending * t.minimum_pending_factor),
                suggested_order_date=order_date,
                details=details,
            )

        if pending > _ZERO:
            projected = stock - pending
            if projected < minimum and days <= lead + safety + t.reorder_window_days:
                return AlertDraft(
                    alert_type=AlertType.SUGGESTED_REORDER,
                    severity=Severity.MEDIUM if material.is_critical else Severity.LOW,
                    message=(
                        f"Projected consumption will take {material.name} below "
                        f"minimum; ordering now avoids a future stock-out."
                    ),
                    project_id=project_id,
                    material_id=material.material_id,
                    days_to_stockout=days,
                    suggested_quantity=_round(pending + (minimum - projected)),
                    suggested_order_date=today + timedelta(days=max(1, days - lead - safety)),
                    details=details,
                )
        return None

    def evaluate_deviation(
        self,
        project_id: UUID,
        link: ActivityMaterialSnapshot,
    ) -> AlertDraft | None:
        """consumption_deviation when consumption runs well ahead of progress."""
        progress = link.activity_progress
        if not (_ZERO < progress < _HUNDRED) or link.estimated_quantity <= _ZERO:
            return None

        t = self.thresholds
        progress_frac = progress / _HUNDRED
        consumption_frac = link.consumed_quantity / link.estimated_quantity
        deviation = consumption_frac - progress_frac
        ratio = consumption_frac / progress_frac
        if not (deviation > t.deviation_threshold and ratio > t.deviation_ratio):
            return None

        if deviation > t.deviation_critical:
            severity = Severity.CRITICAL
        elif deviation > t.deviation_high:
            severity = Severity.HIGH
        else:
            severity = Severity.MEDIUM

        estimated = link.estimated_quantity
        deficit = estimated * consumption_frac / progress_frac - estimated
        return AlertDraft(
            alert_type=AlertType.CONSUMPTION_DEVIATION,
            severity=severity,
            message=(
                f'Inefficiency: "{link.activity_name}" is at {_fmt(progress)}% '
                f"progress but has consumed {_fmt(consumption_frac * _HUNDRED, Decimal('1'))}% "
                f"of {link.material_name}. Projected deficit at completion: "
                f"{_fmt(deficit)} units."
            ),
            project_id=project_id,
            material_id=link.material_id,
            activity_id=link.activity_id,
            details=ConsumptionDeviationDetails(
                progress_pct=progress,
                consumption_pct=_round(consumption_frac * _HUNDRED, _TENTH),
                deviation_pct=_round(deviation * _HUNDRED, _TENTH),
                projected_deficit=_round(deficit),
            ),
        )

    def blocked_dependency(self, project_id: UUID, result: BlockingResult) -> AlertDraft:
        """One alert per blocked activity."""
        blockers_txt = ", ".join(
            f'"{b.name}" ({_fmt(b.progress)}%, {b.dependency_type.value})'
            for b in result.blockers
        )
        message = f'Activity "{result.activity_name}" is blocked. Requires: {blockers_txt}.'
        if result.affected_materials:
            message += f" Affected materials: {', '.join(result.affected_materials)}."
        return AlertDraft(
            alert_type=AlertType.BLOCKED_DEPENDENCY,
            severity=result.severity,
            message=message,
            project_id=project_id,
            activity_id=result.activity_id,
            details=BlockedDependencyDetails(
                blockers=result.blockers,
                affected_materials=result.affected_materials,
            ),
        )

    @traced_engine(
        "alert_rules.project",
        "1.0",
        fingerprint_fields=("project_id", "remaining_days", "today"),
    )
    def project_alerts(
        self,
        project_id: UUID,
        materials: Sequence[MaterialSnapshot],
        pending_by_material: Mapping[UUID, Decimal],
        assignments: Sequence[ActivityMaterialSnapshot],
        blocked: Sequence[BlockingResult],
        remaining_days: int,
        today: date,
    ) -> list[AlertDraft]:
        """
        All project-scoped drafts: stock rules per material, then deviation
        per assignment, then blocked activities.

        The caller aborts before calling when ``remaining_days <= 0``.
        """
        if remaining_days <= 0:
            raise ValueError(f"remaining_days must be positive, got {remaining_days}")

        drafts: list[AlertDraft] = []
        for material in materials:
            pending = pending_by_material.get(material.material_id, _ZERO)
            draft = self.evaluate_stock(project_id, material, pending, remaining_days, today)
            if draft is not None:
                drafts.append(draft)

        for link in assignments:
            draft = self.evaluate_deviation(project_id, link)
            if draft is not None:
                drafts.append(draft)

        for result in blocked:
            drafts.append(self.blocked_dependency(project_id, result))

        logger.info(
            "project_rules_evaluated",
            extra={"project_id": str(project_id), "draft_count": len(drafts)},
        )
        return drafts

    # ------------------------------------------------------------------
    # Global rules
    # ------------------------------------------------------------------

    def evaluate_stagnant(
        self,
        material: MaterialSnapshot,
        last_activity_at: datetime,
        now: datetime,
    ) -> AlertDraft | None:
        """stagnant_stock for stocked materials idle for too long."""
        if material.stock <= _ZERO:
            return None
        t = self.thresholds
        idle_days = (now - last_activity_at).days
        if idle_days < t.stagnant_min_days:
            return None

        if idle_days > t.stagnant_high_days:
            severity = Severity.HIGH
        elif idle_days > t.stagnant_medium_days:
            severity = Severity.MEDIUM
        else:
            severity = Severity.LOW

        idle_capital = _round(material.stock * material.unit_price)
        return AlertDraft(
            alert_type=AlertType.STAGNANT_STOCK,
            severity=severity,
            message=(
                f"Stagnant inventory: {material.name} has {_fmt(material.stock)} "
                f"{material.unit} without movement for {idle_days} days. "
                f"Idle capital: ${idle_capital}."
            ),
            material_id=material.material_id,
            details=StagnantStockDetails(
                idle_days=idle_days,
                last_activity_on=last_activity_at.date(),
                current_stock=material.stock,
                idle_capital=idle_capital,
            ),
        )

    def _expiry_severity(self, days_to_expire: int, warning_days: int) -> Severity:
        if days_to_expire <= 0:
            return Severity.CRITICAL
        if days_to_expire <= self.thresholds.expiry_high_days:
            return Severity.HIGH
        if days_to_expire <= warning_days:
            return Severity.MEDIUM
        return Severity.LOW

    def _expiry_draft(
        self,
        material: MaterialSnapshot,
        label: str,
        expiry_date: date,
        quantity: Decimal,
        today: date,
        batch_id: UUID | None,
        batch_code: str | None,
    ) -> AlertDraft | None:
        days_to_expire = (expiry_date - today).days
        if days_to_expire > 2 * material.expiry_warning_days:
            return None

        severity = self._expiry_severity(days_to_expire, material.expiry_warning_days)
        qty = _fmt(quantity)
        if severity == Severity.CRITICAL:
            message = (
                f"EXPIRED: {label} of {material.name} already expired "
                f"{abs(days_to_expire)} days ago. Block its use. Affected stock: "
                f"{qty} {material.unit}."
            )
        elif severity == Severity.HIGH:
            message = (
                f"{label} of {material.name} expires in {days_to_expire} days "
                f"({expiry_date.isoformat()}). Use it first. Quantity: {qty} {material.unit}."
            )
        elif severity == Severity.MEDIUM:
            message = (
                f"{label} of {material.name} expires in {days_to_expire} days "
                f"({expiry_date.isoformat()}). Plan priority use. Quantity: "
                f"{qty} {material.unit}."
            )
        else:
            message = (
                f"Upcoming expiry: {label} of {material.name} expires on "
                f"{expiry_date.isoformat()} ({days_to_expire} days). Quantity: "
                f"{qty} {material.unit}."
            )

        return AlertDraft(
            alert_type=AlertType.EXPIRING_MATERIAL,
            severity=severity,
            message=message,
            material_id=material.material_id,
            details=ExpiringBatchDetails(
                batch_id=str(batch_id) if batch_id is not None else None,
                batch_code=batch_code,
                expiry_date=expiry_date,
                days_to_expire=days_to_expire,
                remaining_quantity=quantity,
            ),
        )

    def evaluate_batch_expiry(
        self,
        material: MaterialSnapshot,
        batch: BatchSnapshot,
        today: date,
    ) -> AlertDraft | None:
        """expiring_material for one active, dated batch of a perishable material."""
        if (
            not material.is_perishable
            or not batch.is_active
            or batch.remaining_quantity <= _ZERO
            or batch.expiry_date is None
        ):
            return None
        return self._expiry_draft(
            material,
            f"Batch {batch.code}",
            batch.expiry_date,
            batch.remaining_quantity,
            today,
            batch.batch_id,
            batch.code,
        )

    def evaluate_material_expiry(
        self,
        material: MaterialSnapshot,
        today: date,
    ) -> AlertDraft | None:
        """Material-level fallback for perishable stock without batch tracking."""
        if (
            not material.is_perishable
            or material.stock <= _ZERO
            or material.default_expiry_date is None
        ):
            return None
        return self._expiry_draft(
            material,
            "Stock",
            material.default_expiry_date,
            material.stock,
            today,
            None,
            None,
        )

    def evaluate_price(
        self,
        material: MaterialSnapshot,
        observations: Sequence[PriceObservation],
    ) -> AlertDraft | None:
        """price_variation between the two most recent order prices (newest first)."""
        if len(observations) < 2:
            return None
        latest, previous = observations[0], observations[1]
        if previous.unit_price <= _ZERO:
            return None

        t = self.thresholds
        change = latest.unit_price - previous.unit_price
        if abs(change) / previous.unit_price <= t.price_variation_threshold:
            return None

        variation_pct = _round(change / previous.unit_price * _HUNDRED)
        magnitude = abs(variation_pct)
        if magnitude > t.price_high_pct:
            severity = Severity.HIGH
        elif magnitude > t.price_medium_pct:
            severity = Severity.MEDIUM
        else:
            severity = Severity.LOW

        direction = "rose" if variation_pct > _ZERO else "fell"
        message = (
            f"Cost variation: {material.name} {direction} {_fmt(magnitude)}% "
            f"(from ${_round(previous.unit_price)} to ${_round(latest.unit_price)})"
        )
        if latest.supplier_name:
            message += f" on the latest order with {latest.supplier_name}"
        message += "."

        return AlertDraft(
            alert_type=AlertType.PRICE_VARIATION,
            severity=severity,
            message=message,
            material_id=material.material_id,
            details=PriceVariationDetails(
                previous_price=previous.unit_price,
                current_price=latest.unit_price,
                variation_pct=variation_pct,
                previous_ordered_on=previous.ordered_at.date(),
                current_ordered_on=latest.ordered_at.date(),
                supplier_name=latest.supplier_name,
            ),
        )

    @traced_engine("alert_rules.global", "1.0", fingerprint_fields=("now",))
    def global_alerts(
        self,
        materials: Sequence[MaterialSnapshot],
        last_movements: Mapping[UUID, datetime],
        batches: Sequence[BatchSnapshot],
        prices: Mapping[UUID, Sequence[PriceObservation]],
        now: datetime,
    ) -> list[AlertDraft]:
        """
        All global drafts: stagnant stock, then expiry (per batch, with the
        material-level fallback), then price variation.
        """
        today = now.date()
        batches_by_material: dict[UUID, list[BatchSnapshot]] = {}
        for batch in batches:
            batches_by_material.setdefault(batch.material_id, []).append(batch)

        drafts: list[AlertDraft] = []
        for material in materials:
            last_at = last_movements.get(material.material_id, material.created_at)
            draft = self.evaluate_stagnant(material, last_at, now)
            if draft is not None:
                drafts.append(draft)

        for material in materials:
            if not material.is_perishable:
                continue
            material_batches = [
                b for b in batches_by_material.get(material.material_id, ())
                if b.is_active and b.remaining_quantity > _ZERO
            ]
            if material_batches:
                for batch in material_batches:
                    draft = self.evaluate_batch_expiry(material, batch, today)
                    if draft is not None:
                        drafts.append(draft)
            else:
                draft = self.evaluate_material_expiry(material, today)
                if draft is not None:
                    drafts.append(draft)

        for material in materials:
            draft = self.evaluate_price(material, prices.get(material.material_id, ()))
            if draft is not None:
                drafts.append(draft)

        logger.info("global_rules_evaluated", extra={"draft_count": len(drafts)})
        return drafts
