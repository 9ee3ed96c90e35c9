"""
metrics/records.py

Immutable domain records produced by the normalizer, one type per data source.

Records carry business fields only. Storage identity (row id, upload id,
owner) lives on the ORM models and never on these value objects, so two
records with identical fields are still two distinct rows once persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import datetime
from typing import Any, Callable, Union

# A field name or a callable deriving a value from one record.
Accessor = Union[str, Callable[[Any], Any]]


def read_value(record: Any, accessor: Accessor) -> Any:
    """
    Resolve *accessor* against *record*.
    """

    if callable(accessor):
        return accessor(record)
    return getattr(record, accessor)


@dataclass(frozen=True, kw_only=True)
class DomainRecord:
    """
    Shared base for all normalized records.

    Attributes
    ----------
    has_identifier:
        True when the source's gating identifier (tracking id, order id) is
        non-empty. Sources without a gating identifier always report True.
    date_is_fallback:
        True when the record date could not be parsed and was replaced by
        the normalizer's fallback timestamp.
    """

    has_identifier: bool = True
    date_is_fallback: bool = False

    def business_fields(self) -> dict[str, Any]:
        """
        Return the record's business fields, excluding derived flags.
        """

        return {
            item.name: getattr(self, item.name)
            for item in fields(self)
            if item.name not in DERIVED_FIELDS
        }


DERIVED_FIELDS: frozenset[str] = frozenset({"has_identifier", "date_is_fallback"})


@dataclass(frozen=True, kw_only=True)
class AdRecord(DomainRecord):
    """
    One ad-performance row (Meta Ads export, one ad set per day).
    """

    date: datetime
    campaign_name: str = ""
    ad_set_name: str = ""
    objective: str = ""
    impressions: int = 0
    clicks: int = 0
    ctr: float = 0.0
    cpc: float = 0.0
    spend: float = 0.0
    results: int = 0
    cost_per_result: float = 0.0
    purchases: int = 0
    purchase_conversion_value: float = 0.0
    purchase_roas: float = 0.0


@dataclass(frozen=True, kw_only=True)
class ShippingRecord(DomainRecord):
    """
    One shipment row from a logistics aggregator export.
    """

    ship_date: datetime
    order_id: str = ""
    tracking_id: str = ""
    channel: str = ""
    status: str = ""
    channel_sku: str = ""
    master_sku: str = ""
    product_name: str = ""
    product_category: str = ""
    product_quantity: int = 0
    customer_name: str = ""
    customer_email: str = ""
    customer_mobile: str = ""
    address_line1: str = ""
    address_line2: str = ""
    address_city: str = ""
    address_state: str = ""
    address_pincode: str = ""
    payment_method: str = ""
    product_price: float = 0.0
    order_total: float = 0.0
    discount_value: float = 0.0
    weight: float = 0.0
    charged_weight: float = 0.0
    courier_company: str = ""
    pickup_location_id: str = ""
    cod_payable_amount: float = 0.0
    remitted_amount: float = 0.0
    cod_charges: float = 0.0
    shipping_charges: float = 0.0
    freight_total_amount: float = 0.0
    pickup_pincode: str = ""


@dataclass(frozen=True, kw_only=True)
class CommerceOrderRecord(DomainRecord):
    """
    One order line from a Shopify order export.

    Shopify writes one row per line item; order-level columns repeat on
    every line of the same order.
    """

    created_at: datetime
    order_id: str = ""
    name: str = ""
    email: str = ""
    financial_status: str = ""
    paid_at: str = ""
    fulfillment_status: str = ""
    fulfilled_at: str = ""
    accepts_marketing: bool = False
    currency: str = "INR"
    subtotal: float = 0.0
    shipping: float = 0.0
    taxes: float = 0.0
    total: float = 0.0
    discount_code: str = ""
    discount_amount: float = 0.0
    shipping_method: str = ""
    lineitem_quantity: int = 0
    lineitem_name: str = ""
    lineitem_price: float = 0.0
    lineitem_sku: str = ""
    lineitem_discount: float = 0.0
    billing_province: str = ""
    shipping_city: str = ""
    shipping_province: str = ""
    shipping_country: str = ""
    payment_method: str = ""
    refunded_amount: float = 0.0
    notes: str = ""
    tags: str = ""
    source: str = ""
    vendor: str = ""
    risk_level: str = ""
    cancelled_at: str = ""
