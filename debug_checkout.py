"""
Drive a checkout against a running server and replay the gateway callback.

Usage: python debug_checkout.py EMAIL PASSWORD PRODUCT_ID [QUANTITY]
Reads P_CUST_ID_CLIENTE / P_KEY from the environment (or .env) to sign
the simulated confirmation.
"""

import json
import os
import sys
from uuid import uuid4

import requests
from dotenv import load_dotenv

from smartmart.checkout import build_signature

load_dotenv()

base_url = os.getenv("PUBLIC_BASE_URL", "http://localhost:5000").rstrip("/")

if len(sys.argv) < 4:
    print(__doc__)
    sys.exit(1)

email, password, product_id = sys.argv[1:4]
quantity = int(sys.argv[4]) if len(sys.argv) > 4 else 1

try:
    print(f"Signing in as {email}...")
    response = requests.post(
        f"{base_url}/api/auth/login/",
        json={"email": email, "password": password},
        timeout=10,
    )
    response.raise_for_status()
    access_token = response.json()["access_token"]

    print("Starting checkout...")
    response = requests.post(
        f"{base_url}/api/checkout/checkout/",
        json={"items": [{"product_id": product_id, "quantity": quantity}]},
        headers={"Authorization": f"Bearer {access_token}"},
        timeout=10,
    )
    print(f"Status Code: {response.status_code}")
    print(json.dumps(response.json(), indent=2))
    response.raise_for_status()
    payment = response.json()

    reference = f"REF-{uuid4().hex[:8]}"
    transaction_id = uuid4().hex[:12]
    amount = str(payment["amount"])
    currency = payment["currency"]
    callback = {
        "x_ref_payco": reference,
        "x_transaction_id": transaction_id,
        "x_amount": amount,
        "x_currency_code": currency,
        "x_signature": build_signature(
            os.getenv("P_CUST_ID_CLIENTE", ""),
            os.getenv("P_KEY", ""),
            reference,
            transaction_id,
            amount,
            currency,
        ),
        "x_id_factura": payment["invoice"],
        "x_cod_transaction_state": "1",
        "x_extra1": payment["x_extra1"],
        "x_customer_name": "Debug",
        "x_customer_lastname": "Checkout",
        "x_franchise": "VS",
        "x_tax_ico": "0",
    }

    print(f"Posting confirmation for {payment['invoice']}...")
    response = requests.post(
        f"{base_url}/api/checkout/checkout/confirmation", data=callback, timeout=10
    )
    print(f"Status Code: {response.status_code}")
    print("Response Body:")
    print(response.text)
except Exception as e:
    print(f"Error: {e}")
