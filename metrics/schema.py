"""
metrics/schema.py

Declarative field tables for each data source.

Each RecordSchema lists the canonical fields of one record type together
with the semantic kind used by the normalizer, the canonical CSV header
the source platform exports, and alternative header spellings the schema
mapper may auto-detect.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any

from metrics.records import AdRecord, CommerceOrderRecord, DomainRecord, ShippingRecord


class DataSource(str, enum.Enum):
    ADS = "ads"
    SHIPPING = "shipping"
    COMMERCE = "commerce"


class FieldKind(str, enum.Enum):
    TEXT = "text"
    IDENTIFIER = "identifier"
    NUMBER = "number"
    PERCENT = "percent"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    DATE = "date"


NUMERIC_KINDS: frozenset[FieldKind] = frozenset(
    {FieldKind.NUMBER, FieldKind.PERCENT, FieldKind.INTEGER}
)


@dataclass(frozen=True)
class FieldSpec:
    """
    One canonical field of a record schema.
    """

    name: str
    kind: FieldKind
    header: str
    aliases: tuple[str, ...] = ()
    required: bool = False
    default: Any = None


@dataclass(frozen=True)
class RecordSchema:
    """
    Field table and record type for one data source.
    """

    source: DataSource
    record_type: type[DomainRecord]
    fields: tuple[FieldSpec, ...]
    date_field: str
    identifier_field: str | None = None

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(spec.name for spec in self.fields)

    @property
    def required_fields(self) -> tuple[str, ...]:
        return tuple(spec.name for spec in self.fields if spec.required)

    @property
    def headers(self) -> tuple[str, ...]:
        return tuple(spec.header for spec in self.fields)

    def field(self, name: str) -> FieldSpec:
        for spec in self.fields:
            if spec.name == name:
                return spec
        raise KeyError(f"Unknown field {name!r} for source {self.source.value!r}.")

    def default_mapping(self) -> dict[str, str]:
        """
        Canonical field -> canonical CSV header.
        """

        return {spec.name: spec.header for spec in self.fields}

    def aliases(self) -> dict[str, tuple[str, ...]]:
        """
        Canonical field -> header candidates used for auto-detection.
        """

        return {spec.name: (spec.header, *spec.aliases) for spec in self.fields}


def _f(
    name: str,
    kind: FieldKind,
    header: str,
    *aliases: str,
    required: bool = False,
    default: Any = None,
) -> FieldSpec:
    return FieldSpec(
        name=name,
        kind=kind,
        header=header,
        aliases=tuple(aliases),
        required=required,
        default=default,
    )


T = FieldKind.TEXT
N = FieldKind.NUMBER
I = FieldKind.INTEGER  # noqa: E741

AD_SCHEMA = RecordSchema(
    source=DataSource.ADS,
    record_type=AdRecord,
    date_field="date",
    fields=(
        _f("date", FieldKind.DATE, "Date", "Day", "Reporting starts", required=True),
        _f("campaign_name", T, "Campaign name", "Campaign", required=True),
        _f("ad_set_name", T, "Ad set name", "Ad set", "Adset name", required=True),
        _f("objective", T, "Objective", "Campaign objective"),
        _f("impressions", I, "Impressions", "Impr.", required=True),
        _f("clicks", I, "Link clicks", "Clicks", "Clicks (all)", required=True),
        _f("ctr", FieldKind.PERCENT, "CTR (All)", "CTR", "CTR (link click-through rate)", required=True),
        _f("cpc", N, "CPC (cost per link click)", "CPC", "Cost per click", required=True),
        _f("spend", N, "Amount spent (INR)", "Amount spent", "Spend", "Cost", required=True),
        _f("results", I, "Results", "Result", required=True),
        _f("cost_per_result", N, "Cost per result", "Cost per results", required=True),
        _f("purchases", I, "Purchases", "Website purchases"),
        _f(
            "purchase_conversion_value",
            N,
            "Purchases conversion value",
            "Purchase conversion value",
            "Conversion value",
            required=True,
        ),
        _f("purchase_roas", N, "Purchase ROAS", "ROAS", "Purchase ROAS (return on ad spend)", required=True),
    ),
)

SHIPPING_SCHEMA = RecordSchema(
    source=DataSource.SHIPPING,
    record_type=ShippingRecord,
    date_field="ship_date",
    identifier_field="tracking_id",
    fields=(
        _f("order_id", T, "Order ID", "Order Id", "Order Number", required=True),
        _f("tracking_id", FieldKind.IDENTIFIER, "Tracking ID", "AWB", "AWB Number", "Tracking Number"),
        _f("ship_date", FieldKind.DATE, "Ship Date", "Shipped Date", "Shipment Date", required=True),
        _f("channel", T, "Channel"),
        _f("status", T, "Status", "Shipment Status", required=True),
        _f("channel_sku", T, "Channel SKU"),
        _f("master_sku", T, "Master SKU", "SKU"),
        _f("product_name", T, "Product Name", "Product"),
        _f("product_category", T, "Product Category", "Category"),
        _f("product_quantity", I, "Product Quantity", "Quantity", "Qty"),
        _f("customer_name", T, "Customer Name"),
        _f("customer_email", T, "Customer Email", "Email"),
        _f("customer_mobile", T, "Customer Mobile", "Mobile", "Phone"),
        _f("address_line1", T, "Address Line 1"),
        _f("address_line2", T, "Address Line 2"),
        _f("address_city", T, "Address City", "City"),
        _f("address_state", T, "Address State", "State"),
        _f("address_pincode", T, "Address Pincode", "Pincode"),
        _f("payment_method", T, "Payment Method", "Payment Mode"),
        _f("product_price", N, "Product Price"),
        _f("order_total", N, "Order Total", "Total", required=True),
        _f("discount_value", N, "Discount Value", "Discount"),
        _f("weight", N, "Weight (KG)", "Weight"),
        _f("charged_weight", N, "Charged Weight"),
        _f("courier_company", T, "Courier Company", "Courier"),
        _f("pickup_location_id", T, "Pickup Location ID"),
        _f("cod_payable_amount", N, "COD Payble Amount", "COD Payable Amount", "COD Amount"),
        _f("remitted_amount", N, "Remitted Amount"),
        _f("cod_charges", N, "COD Charges"),
        _f("shipping_charges", N, "Shipping Charges"),
        _f("freight_total_amount", N, "Freight Total Amount", "Freight Total"),
        _f("pickup_pincode", T, "Pickup Pincode"),
    ),
)

COMMERCE_SCHEMA = RecordSchema(
    source=DataSource.COMMERCE,
    record_type=CommerceOrderRecord,
    date_field="created_at",
    identifier_field="order_id",
    fields=(
        _f("order_id", FieldKind.IDENTIFIER, "Id", "Order ID"),
        _f("name", T, "Name", "Order Name", required=True),
        _f("email", T, "Email", required=True),
        _f("financial_status", T, "Financial Status", required=True),
        _f("paid_at", T, "Paid at"),
        _f("fulfillment_status", T, "Fulfillment Status"),
        _f("fulfilled_at", T, "Fulfilled at"),
        _f("accepts_marketing", FieldKind.BOOLEAN, "Accepts Marketing"),
        _f("currency", T, "Currency", default="INR"),
        _f("subtotal", N, "Subtotal"),
        _f("shipping", N, "Shipping"),
        _f("taxes", N, "Taxes"),
        _f("total", N, "Total", required=True),
        _f("discount_code", T, "Discount Code"),
        _f("discount_amount", N, "Discount Amount"),
        _f("shipping_method", T, "Shipping Method"),
        _f("created_at", FieldKind.DATE, "Created at", "Order Date", required=True),
        _f("lineitem_quantity", I, "Lineitem quantity", required=True),
        _f("lineitem_name", T, "Lineitem name", required=True),
        _f("lineitem_price", N, "Lineitem price", required=True),
        _f("lineitem_sku", T, "Lineitem sku"),
        _f("lineitem_discount", N, "Lineitem discount"),
        _f("billing_province", T, "Billing Province"),
        _f("shipping_city", T, "Shipping City"),
        _f("shipping_province", T, "Shipping Province Name", "Shipping Province"),
        _f("shipping_country", T, "Shipping Country"),
        _f("payment_method", T, "Payment Method"),
        _f("refunded_amount", N, "Refunded Amount"),
        _f("notes", T, "Notes"),
        _f("tags", T, "Tags"),
        _f("source", T, "Source"),
        _f("vendor", T, "Vendor"),
        _f("risk_level", T, "Risk Level"),
        _f("cancelled_at", T, "Cancelled at"),
    ),
)

_SCHEMAS: dict[DataSource, RecordSchema] = {
    DataSource.ADS: AD_SCHEMA,
    DataSource.SHIPPING: SHIPPING_SCHEMA,
    DataSource.COMMERCE: COMMERCE_SCHEMA,
}


def get_schema(source: DataSource | str) -> RecordSchema:
    """
    Return the schema for *source*; raises ValueError for unknown sources.
    """

    return _SCHEMAS[DataSource(source)]
