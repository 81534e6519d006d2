from datetime import date

# Fixed processing date so the event-date window does not drift
TODAY = date(2024, 10, 1)


def expense_payload(**overrides):
    payload = {
        "event_date": "2024-09-15",
        "amount": "100.00",
        "direction": "expense",
        "description": "office paper",
        "category": "administrative",
        "cost_type": "other_expense",
        "payment_method": "cash",
    }
    payload.update(overrides)
    return payload


def income_payload(**overrides):
    payload = {
        "event_date": "2024-09-16",
        "amount": "500.00",
        "direction": "income",
        "description": "counter sales",
        "income_category": "direct_sale",
        "payment_method": "yape",
    }
    payload.update(overrides)
    return payload
