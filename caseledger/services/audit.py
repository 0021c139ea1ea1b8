"""
Discrepancy audit — recorded order value against ledger value.

Advisory only: nothing here writes to the ledger.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from caseledger.conf import caseledger_settings
from caseledger.models.enums import Severity
from caseledger.models.item import Item
from caseledger.models.order import Order

logger = logging.getLogger('caseledger')

CENT = Decimal('0.01')
TENTH = Decimal('0.1')

# Share of a finding's value expected to be recovered, by finding weight
GAIN_WEIGHTS = {
    'high': Decimal('0.5'),
    'medium': Decimal('0.2'),
}

SEVERITY_ACTIONS = {
    Severity.CRITICAL: [
        'Perform an immediate physical count of every item',
        'Review and reconcile all recent invoices and credit memos',
        'Check FIFO consumption history for unexplained adjustments',
    ],
    Severity.WARNING: [
        'Review inventory valuation (unit prices per item)',
        'Synchronize order and inventory data',
        'Schedule regular physical counts',
    ],
}


@dataclass(frozen=True)
class Finding:
    """
    One root-cause hypothesis.

    weight is 'high' or 'medium'; value_at_stake is the money the
    finding could explain (zero when it cannot be priced).
    """

    code: str
    weight: str
    count: int
    value_at_stake: Decimal
    detail: str
    subjects: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            'type': self.code,
            'weight': self.weight,
            'count': self.count,
            'valueAtStake': self.value_at_stake,
            'description': self.detail,
            'subjects': self.subjects,
        }


@dataclass(frozen=True)
class Recommendation:
    finding: str
    action: str
    gain_low: Decimal
    gain_high: Decimal
    impact: str

    def as_dict(self) -> dict:
        return {
            'finding': self.finding,
            'action': self.action,
            'expectedGain': [self.gain_low, self.gain_high],
            'impact': self.impact,
        }


@dataclass(frozen=True)
class AuditReport:
    orders_total: Decimal
    credit_total: Decimal
    inventory_total: Decimal
    discrepancy: Decimal
    discrepancy_percent: Decimal
    severity: Severity
    findings: list[Finding] = field(default_factory=list)
    recommendations: list[Recommendation] = field(default_factory=list)
    actions: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            'ordersTotal': self.orders_total,
            'creditMemoAdjustments': self.credit_total,
            'inventoryTotal': self.inventory_total,
            'discrepancy': self.discrepancy,
            'discrepancyPercent': self.discrepancy_percent,
            'severity': self.severity.value,
            'issues': [f.as_dict() for f in self.findings],
            'recommendations': [r.as_dict() for r in self.recommendations],
            'actions': self.actions,
        }


RECOMMENDED_ACTIONS = {
    'MISSING_PRICING': 'Fill in unit prices for unpriced items and order lines',
    'ORDERS_WITHOUT_LINES': 'Re-extract line items for orders that have none',
    'LINE_TOTAL_MISMATCH': 'Re-check invoices whose lines do not add up to the total',
    'ITEMS_MISSING_FROM_LEDGER': 'Receive cases for items that were ordered but never entered',
    'ITEMS_MISSING_FROM_ORDERS': 'Trace the invoices of stocked items with no order history',
    'HIGH_CREDIT_ADJUSTMENTS': 'Review credit memos against the cases they returned',
}


def classify(percent: Decimal) -> Severity:
    if percent <= caseledger_settings.DISCREPANCY_WARNING_PERCENT:
        return Severity.NORMAL
    if percent <= caseledger_settings.DISCREPANCY_CRITICAL_PERCENT:
        return Severity.WARNING
    return Severity.CRITICAL


def discrepancy_percent(orders_total: Decimal, discrepancy: Decimal) -> Decimal:
    """discrepancy / orders_total in percent; 0 or 100 when there are no orders."""
    if orders_total == 0:
        return Decimal('0') if discrepancy == 0 else Decimal('100')
    return (discrepancy / abs(orders_total) * 100).quantize(CENT)


def _find(orders, items, line_tolerance, credit_alert) -> tuple[list[Finding], Decimal]:
    findings = []
    invoices = [o for o in orders if not o.is_credit_memo]
    credits = [o for o in orders if o.is_credit_memo]
    credit_total = sum((abs(o.total_value) for o in credits), Decimal('0'))

    unpriced_items = [i for i in items if i.total_weight > 0 and i.unit_price <= 0]
    unpriced_lines = [
        (o, line) for o in invoices for line in o.lines.all() if line.unit_price <= 0
    ]
    if unpriced_items or unpriced_lines:
        findings.append(Finding(
            code='MISSING_PRICING',
            weight='high' if unpriced_items else 'medium',
            count=len(unpriced_items) + len(unpriced_lines),
            value_at_stake=Decimal('0'),
            detail=(
                f"{len(unpriced_items)} stocked items and {len(unpriced_lines)} "
                f"order lines have no unit price"
            ),
            subjects=sorted(
                {i.item_code for i in unpriced_items} | {line.item_code for _, line in unpriced_lines}
            ),
        ))

    bare = [o for o in invoices if not o.lines.all()]
    if bare:
        findings.append(Finding(
            code='ORDERS_WITHOUT_LINES',
            weight='high',
            count=len(bare),
            value_at_stake=sum((o.total_value for o in bare), Decimal('0')),
            detail=f"{len(bare)} orders have no line-item breakdown",
            subjects=[o.order_id for o in bare],
        ))

    mismatched = []
    for o in invoices:
        lines = o.lines.all()
        if not lines:
            continue
        gap = abs(o.total_value - sum((line.line_total for line in lines), Decimal('0')))
        if gap > line_tolerance:
            mismatched.append((o, gap))
    if mismatched:
        findings.append(Finding(
            code='LINE_TOTAL_MISMATCH',
            weight='medium',
            count=len(mismatched),
            value_at_stake=sum((gap for _, gap in mismatched), Decimal('0')),
            detail=f"{len(mismatched)} orders differ from their summed lines by more than {line_tolerance}",
            subjects=[o.order_id for o, _ in mismatched],
        ))

    ordered = {}
    for o in invoices:
        for line in o.lines.all():
            ordered[line.item_code] = ordered.get(line.item_code, Decimal('0')) + line.line_total
    ledger_codes = {i.item_code for i in items}

    missing_from_ledger = sorted(set(ordered) - ledger_codes)
    if missing_from_ledger:
        findings.append(Finding(
            code='ITEMS_MISSING_FROM_LEDGER',
            weight='high',
            count=len(missing_from_ledger),
            value_at_stake=sum((ordered[c] for c in missing_from_ledger), Decimal('0')),
            detail=f"{len(missing_from_ledger)} items ordered but not found in the ledger",
            subjects=missing_from_ledger,
        ))

    orphaned = [i for i in items if i.total_cases > 0 and i.item_code not in ordered]
    if orphaned:
        findings.append(Finding(
            code='ITEMS_MISSING_FROM_ORDERS',
            weight='medium',
            count=len(orphaned),
            value_at_stake=sum((i.inventory_value for i in orphaned), Decimal('0')).quantize(CENT),
            detail=f"{len(orphaned)} stocked items with no order history",
            subjects=[i.item_code for i in orphaned],
        ))

    if credit_total > credit_alert:
        findings.append(Finding(
            code='HIGH_CREDIT_ADJUSTMENTS',
            weight='medium',
            count=len(credits),
            value_at_stake=credit_total,
            detail=f"High credit memo adjustments: ${credit_total:.2f}",
            subjects=[o.order_id for o in credits],
        ))

    return findings, credit_total


def _recommend(findings, orders_total, percent) -> list[Recommendation]:
    """
    Rank findings by value at stake and estimate the gain of fixing each.

    gain_high is the finding's share of the orders total (or count x
    weight for unpriced findings), capped at the discrepancy; gain_low
    scales it by the finding weight.
    """
    ranked = sorted(findings, key=lambda f: (f.value_at_stake, f.count), reverse=True)
    result = []
    for finding in ranked:
        weight = GAIN_WEIGHTS[finding.weight]
        if finding.value_at_stake > 0 and orders_total:
            share = finding.value_at_stake / abs(orders_total) * 100
        else:
            share = finding.count * weight
        high = min(share, percent).quantize(TENTH)
        low = (high * weight).quantize(TENTH)

        if high >= 5:
            impact = 'high'
        elif high >= 1:
            impact = 'moderate'
        else:
            impact = 'low'

        result.append(Recommendation(
            finding=finding.code,
            action=RECOMMENDED_ACTIONS[finding.code],
            gain_low=low,
            gain_high=high,
            impact=impact,
        ))
    return result


class LedgerAudit:
    """Cross-check of order totals against ledger value."""

    @classmethod
    def audit(cls, orders=None, items=None) -> AuditReport:
        """
        Compare what was ordered with what the ledger holds.

        Args:
            orders: Orders to audit (default: every order)
            items: Ledger items to value (default: every item)

        Returns:
            AuditReport with severity, findings and ranked recommendations.
            Nothing is changed.
        """
        if orders is None:
            orders = Order.objects.prefetch_related('lines')
        if items is None:
            items = Item.objects.all()
        orders = list(orders)
        items = list(items)

        findings, credit_total = _find(
            orders,
            items,
            caseledger_settings.LINE_TOTAL_TOLERANCE,
            caseledger_settings.CREDIT_ALERT_AMOUNT,
        )

        invoiced = sum((o.total_value for o in orders if not o.is_credit_memo), Decimal('0'))
        orders_total = invoiced - credit_total
        inventory_total = sum((i.inventory_value for i in items), Decimal('0')).quantize(CENT)
        discrepancy = abs(orders_total - inventory_total)
        percent = discrepancy_percent(orders_total, discrepancy)
        severity = classify(percent)

        report = AuditReport(
            orders_total=orders_total,
            credit_total=credit_total,
            inventory_total=inventory_total,
            discrepancy=discrepancy,
            discrepancy_percent=percent,
            severity=severity,
            findings=findings,
            recommendations=_recommend(findings, orders_total, percent),
            actions=list(SEVERITY_ACTIONS.get(severity, [])),
        )

        log = logger.info if severity == Severity.NORMAL else logger.warning
        log(
            "ledger.audit",
            extra={
                "orders_total": str(orders_total),
                "inventory_total": str(inventory_total),
                "discrepancy_percent": str(percent),
                "severity": severity.value,
                "findings": [f.code for f in findings],
            },
        )
        return report
