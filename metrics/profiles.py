"""
metrics/profiles.py

Per-source metric declarations for the aggregation engine.

Rates are expressed on a 0-100 scale (CTR, CVR, delivery, collection,
fulfillment, repeat and discount percentages); monetary ratios (AOV, CPC,
CPM, ROAS, cost per result) are plain quotients.
"""

from __future__ import annotations

from typing import Any, Sequence

from metrics.aggregator import (
    UNKNOWN_LABEL,
    AggregateMetrics,
    Breakdown,
    Count,
    Distribution,
    First,
    MetricsProfile,
    Ratio,
    SeriesSpec,
    Sum,
    UniqueCount,
    aggregate,
)
from metrics.records import AdRecord, CommerceOrderRecord, DomainRecord, ShippingRecord
from metrics.schema import DataSource

# ---------------------------------------------------------------------------
# Ads
# ---------------------------------------------------------------------------


def _is_sales_objective(record: AdRecord) -> bool:
    return "sales" in record.objective.lower()


def _ad_measures() -> tuple:
    return (
        Sum("total_impressions", "impressions"),
        Sum("total_clicks", "clicks"),
        Sum("total_spend", "spend"),
        Sum("total_sales", "purchase_conversion_value"),
        Sum("total_purchases", "purchases"),
        Sum("total_results", "results"),
        Sum("total_orders", "results", where=_is_sales_objective),
        Sum("total_visitors", "clicks"),
        Ratio("ctr", "total_clicks", "total_impressions", 100.0),
        Ratio("cpc", "total_spend", "total_clicks"),
        Ratio("cpm", "total_spend", "total_impressions", 1000.0),
        Ratio("roas", "total_sales", "total_spend"),
        Ratio("cost_per_result", "total_spend", "total_results"),
        Ratio("cvr", "total_purchases", "total_clicks", 100.0),
    )


AD_PROFILE = MetricsProfile(
    source=DataSource.ADS.value,
    date_field="date",
    measures=_ad_measures(),
    distributions=(
        Distribution("objective_distribution", "objective"),
        Distribution("spend_by_objective", "objective", measure="spend"),
    ),
    breakdowns=(
        Breakdown(
            "campaign_performance",
            "campaign_name",
            _ad_measures(),
            label="campaign_name",
            sort_by="total_spend",
        ),
        Breakdown(
            "ad_set_performance",
            "ad_set_name",
            (First("campaign_name", "campaign_name"), *_ad_measures()),
            label="ad_set_name",
            sort_by="total_spend",
        ),
    ),
    series=(
        SeriesSpec(
            "performance_by_date",
            count_name="rows",
            sums=(
                ("impressions", "impressions"),
                ("clicks", "clicks"),
                ("spend", "spend"),
                ("sales", "purchase_conversion_value"),
                ("purchases", "purchases"),
                ("results", "results"),
            ),
            ratios=(
                Ratio("ctr", "clicks", "impressions", 100.0),
                Ratio("cpc", "spend", "clicks"),
                Ratio("cpm", "spend", "impressions", 1000.0),
                Ratio("roas", "sales", "spend"),
                Ratio("cost_per_result", "spend", "results"),
                Ratio("cvr", "purchases", "clicks", 100.0),
            ),
        ),
    ),
)


# ---------------------------------------------------------------------------
# Shipping
# ---------------------------------------------------------------------------


def is_delivered(record: ShippingRecord) -> bool:
    status = record.status.upper()
    return "DELIVER" in status or "COMPLETED" in status


def is_rto(record: ShippingRecord) -> bool:
    status = record.status.upper()
    return not is_delivered(record) and ("RTO" in status or "RETURN" in status)


def is_cod(record: ShippingRecord) -> bool:
    return "COD" in record.payment_method.upper()


def shipping_customer_key(record: ShippingRecord) -> str:
    return record.customer_email or record.customer_mobile or record.customer_name or UNKNOWN_LABEL


SHIPPING_PROFILE = MetricsProfile(
    source=DataSource.SHIPPING.value,
    date_field="ship_date",
    gate="has_identifier",
    measures=(
        Count("total_orders"),
        Sum("total_revenue", "order_total"),
        Ratio("avg_order_value", "total_revenue", "total_orders"),
        Sum("total_discounts", "discount_value"),
        Ratio("discount_percentage", "total_discounts", "total_revenue", 100.0),
        Count("_delivered", where=is_delivered),
        Ratio("delivery_rate", "_delivered", "total_orders", 100.0),
        Count("_rto", where=is_rto),
        Ratio("rto_rate", "_rto", "total_orders", 100.0),
        Sum("_weight_delta", lambda record: record.charged_weight - record.weight),
        Ratio("weight_discrepancy", "_weight_delta", "total_orders"),
        Sum("total_cod_amount", "cod_payable_amount", where=is_cod, section="cod_analysis"),
        Sum("total_remitted", "remitted_amount", where=is_cod, section="cod_analysis"),
        Ratio(
            "cod_collection_rate",
            "total_remitted",
            "total_cod_amount",
            100.0,
            section="cod_analysis",
        ),
        Count("cod_orders_count", where=is_cod, section="cod_analysis"),
        Sum("_cod_charges", "cod_charges", where=is_cod),
        Ratio("avg_cod_charges", "_cod_charges", "cod_orders_count", section="cod_analysis"),
        UniqueCount("unique_customers", shipping_customer_key, section="customer_analysis"),
        UniqueCount(
            "repeat_customers",
            shipping_customer_key,
            min_occurrences=2,
            section="customer_analysis",
        ),
        Ratio(
            "repeat_rate",
            "repeat_customers",
            "unique_customers",
            100.0,
            section="customer_analysis",
        ),
    ),
    distributions=(
        Distribution("status_distribution", "status"),
        Distribution("payment_distribution", "payment_method"),
        Distribution("geographic_distribution", "address_state"),
    ),
    breakdowns=(
        Breakdown(
            "courier_performance",
            "courier_company",
            (
                Count("total"),
                Count("delivered", where=is_delivered),
                Count("rto", where=is_rto),
                Sum("_freight", "freight_total_amount"),
                Ratio("delivery_rate", "delivered", "total", 100.0),
                Ratio("rto_rate", "rto", "total", 100.0),
                Ratio("avg_cost", "_freight", "total"),
            ),
        ),
        Breakdown(
            "top_products",
            "product_name",
            (
                Sum("quantity", "product_quantity"),
                Sum("revenue", "order_total"),
            ),
            sort_by="revenue",
            ranked=True,
        ),
    ),
    series=(
        SeriesSpec(
            "order_volume_by_date",
            count_name="orders",
            sums=(("revenue", "order_total"),),
        ),
    ),
)


# ---------------------------------------------------------------------------
# Commerce (Shopify)
# ---------------------------------------------------------------------------


def is_fulfilled(record: CommerceOrderRecord) -> bool:
    return record.fulfillment_status.strip().lower() == "fulfilled"


def device_label(record: CommerceOrderRecord) -> str:
    """
    Device family from a ``user-agent:`` note; Unknown without one.
    """

    notes = record.notes.lower()
    if "user-agent:" not in notes:
        return UNKNOWN_LABEL
    if "android" in notes:
        return "Android"
    if "iphone" in notes or "ipad" in notes:
        return "iOS"
    if "windows" in notes:
        return "Windows"
    if "macintosh" in notes:
        return "Mac"
    return "Other"


def _lineitem_revenue(record: CommerceOrderRecord) -> float:
    return record.lineitem_price * record.lineitem_quantity


def _commerce_customer_key(record: CommerceOrderRecord) -> str:
    return record.email or UNKNOWN_LABEL


COMMERCE_PROFILE = MetricsProfile(
    source=DataSource.COMMERCE.value,
    date_field="created_at",
    measures=(
        Count("total_orders"),
        Sum("total_revenue", "total"),
        Ratio("avg_order_value", "total_revenue", "total_orders"),
        Sum("total_discounts", "discount_amount"),
        Ratio("discount_percentage", "total_discounts", "total_revenue", 100.0),
        Count("_fulfilled", where=is_fulfilled),
        Ratio("fulfillment_rate", "_fulfilled", "total_orders", 100.0),
        Sum("total_refunds", "refunded_amount"),
        Sum("total_shipping", "shipping"),
        Sum("total_taxes", "taxes"),
        UniqueCount("unique_customers", _commerce_customer_key, section="customer_analysis"),
        UniqueCount(
            "repeat_customers",
            _commerce_customer_key,
            min_occurrences=2,
            section="customer_analysis",
        ),
        Ratio(
            "repeat_rate",
            "repeat_customers",
            "unique_customers",
            100.0,
            section="customer_analysis",
        ),
    ),
    distributions=(
        Distribution("status_distribution", "fulfillment_status"),
        Distribution("financial_status_distribution", "financial_status"),
        Distribution("payment_distribution", "payment_method"),
        Distribution("region_distribution", "shipping_province"),
        Distribution("device_distribution", device_label),
    ),
    breakdowns=(
        Breakdown(
            "top_products",
            "lineitem_name",
            (
                Sum("quantity", "lineitem_quantity"),
                Sum("revenue", _lineitem_revenue),
                Count("orders"),
            ),
            sort_by="revenue",
            ranked=True,
        ),
    ),
    series=(
        SeriesSpec(
            "order_volume_by_date",
            count_name="orders",
            sums=(("revenue", "total"), ("discounts", "discount_amount")),
        ),
    ),
)


_PROFILES: dict[DataSource, MetricsProfile] = {
    DataSource.ADS: AD_PROFILE,
    DataSource.SHIPPING: SHIPPING_PROFILE,
    DataSource.COMMERCE: COMMERCE_PROFILE,
}


def get_profile(source: DataSource | str) -> MetricsProfile:
    return _PROFILES[DataSource(source)]


def aggregate_ads(records: Sequence[AdRecord], **options: Any) -> AggregateMetrics:
    return aggregate(records, AD_PROFILE, **options)


def aggregate_shipping(records: Sequence[ShippingRecord], **options: Any) -> AggregateMetrics:
    return aggregate(records, SHIPPING_PROFILE, **options)


def aggregate_commerce(records: Sequence[CommerceOrderRecord], **options: Any) -> AggregateMetrics:
    return aggregate(records, COMMERCE_PROFILE, **options)


def aggregate_source(
    source: DataSource | str,
    records: Sequence[DomainRecord],
    **options: Any,
) -> AggregateMetrics:
    return aggregate(records, get_profile(source), **options)
