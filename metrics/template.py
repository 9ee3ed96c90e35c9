"""
metrics/template.py

Downloadable CSV templates: canonical headers plus illustrative rows.
"""

from __future__ import annotations

from typing import Any

from metrics.export import to_delimited_text
from metrics.schema import DataSource, get_schema

_SAMPLE_ROWS: dict[DataSource, tuple[dict[str, Any], ...]] = {
    DataSource.ADS: (
        {
            "date": "2024-01-01",
            "campaign_name": "Winter Sale",
            "ad_set_name": "Women 25-34",
            "objective": "Sales",
            "impressions": 12500,
            "clicks": 340,
            "ctr": 2.72,
            "cpc": 4.41,
            "spend": 1500.00,
            "results": 18,
            "cost_per_result": 83.33,
            "purchases": 18,
            "purchase_conversion_value": 5400.00,
            "purchase_roas": 3.6,
        },
        {
            "date": "2024-01-02",
            "campaign_name": "Brand Awareness",
            "ad_set_name": "Lookalike 1%",
            "objective": "Awareness",
            "impressions": 30000,
            "clicks": 210,
            "ctr": 0.7,
            "cpc": 3.81,
            "spend": 800.00,
            "results": 25000,
            "cost_per_result": 0.03,
            "purchases": 0,
            "purchase_conversion_value": 0,
            "purchase_roas": 0,
        },
    ),
    DataSource.SHIPPING: (
        {
            "order_id": "ORD-1001",
            "tracking_id": "AWB123456789",
            "ship_date": "2024-01-01",
            "channel": "Shopify",
            "status": "Delivered",
            "product_name": "Cotton T-Shirt",
            "product_quantity": 2,
            "customer_name": "Asha Rao",
            "customer_email": "asha@example.com",
            "address_city": "Pune",
            "address_state": "Maharashtra",
            "address_pincode": "411001",
            "payment_method": "COD",
            "product_price": 499.00,
            "order_total": 998.00,
            "discount_value": 50.00,
            "weight": 0.5,
            "charged_weight": 0.5,
            "courier_company": "Delhivery",
            "cod_payable_amount": 998.00,
            "remitted_amount": 998.00,
            "cod_charges": 30.00,
            "shipping_charges": 60.00,
            "freight_total_amount": 90.00,
        },
        {
            "order_id": "ORD-1002",
            "tracking_id": "AWB987654321",
            "ship_date": "2024-01-02",
            "channel": "Website",
            "status": "RTO Initiated",
            "product_name": "Denim Jacket",
            "product_quantity": 1,
            "customer_name": "Vikram Shah",
            "customer_mobile": "9800000000",
            "address_city": "Jaipur",
            "address_state": "Rajasthan",
            "payment_method": "Prepaid",
            "product_price": 1999.00,
            "order_total": 1999.00,
            "weight": 1.0,
            "charged_weight": 1.5,
            "courier_company": "Blue Dart",
            "shipping_charges": 80.00,
            "freight_total_amount": 80.00,
        },
    ),
    DataSource.COMMERCE: (
        {
            "order_id": "5512345678901",
            "name": "#1001",
            "email": "asha@example.com",
            "financial_status": "paid",
            "paid_at": "2024-01-01 10:15:00 +0530",
            "fulfillment_status": "fulfilled",
            "accepts_marketing": True,
            "currency": "INR",
            "subtotal": 998.00,
            "shipping": 60.00,
            "taxes": 0,
            "total": 1058.00,
            "discount_amount": 0,
            "created_at": "2024-01-01 10:14:32 +0530",
            "lineitem_quantity": 2,
            "lineitem_name": "Cotton T-Shirt",
            "lineitem_price": 499.00,
            "lineitem_sku": "TSHIRT-M",
            "shipping_city": "Pune",
            "shipping_province": "Maharashtra",
            "shipping_country": "IN",
            "payment_method": "Razorpay",
        },
    ),
}


def template_rows(source: DataSource | str) -> list[dict[str, Any]]:
    """
    Sample rows keyed by canonical header, every header present.
    """

    schema = get_schema(source)
    rows = []
    for sample in _SAMPLE_ROWS[schema.source]:
        row = {}
        for spec in schema.fields:
            value = sample.get(spec.name, "")
            if isinstance(value, bool):
                value = "yes" if value else "no"
            row[spec.header] = value
        rows.append(row)
    return rows


def template_csv(source: DataSource | str) -> str:
    return to_delimited_text(template_rows(source), exclude=())


def template_filename(source: DataSource | str) -> str:
    return f"adpulse_{DataSource(source).value}_template.csv"
