import hashlib
import hmac
import json
import time

STRIPE_SECRET = "whsec_test_secret"
RAZORPAY_KEY_SECRET = "rzp_test_key_secret"
RAZORPAY_WEBHOOK_SECRET = "rzp_webhook_secret"


def stripe_signature(payload: str, *, secret: str = STRIPE_SECRET, timestamp=None) -> str:
    timestamp = int(timestamp or time.time())
    signed = f"{timestamp}.{payload}".encode("utf-8")
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def hmac_hex(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def stripe_intent_event(event_type, intent_id, *, amount=99900, currency="inr", metadata=None,
                        event_id="evt_1", **intent_fields) -> str:
    intent = {
        "id": intent_id,
        "object": "payment_intent",
        "amount": amount,
        "amount_received": amount if event_type == "payment_intent.succeeded" else 0,
        "currency": currency,
        "metadata": metadata or {},
    }
    intent.update(intent_fields)
    return json.dumps({"id": event_id, "type": event_type, "data": {"object": intent}})


def stripe_refund_event(intent_id, *, amount=99900, currency="inr", event_id="evt_refund", refund_id="re_1") -> str:
    charge = {
        "id": "ch_1",
        "object": "charge",
        "payment_intent": intent_id,
        "amount_refunded": amount,
        "currency": currency,
        "metadata": {},
        "refunds": {"data": [{"id": refund_id, "reason": "requested_by_customer"}]},
    }
    return json.dumps({"id": event_id, "type": "charge.refunded", "data": {"object": charge}})


def razorpay_payment_event(event_type, payment_id, *, order_id="order_1", amount=99900, notes=None,
                           **payment_fields) -> str:
    payment = {
        "id": payment_id,
        "entity": "payment",
        "order_id": order_id,
        "amount": amount,
        "currency": "INR",
        "notes": notes if notes is not None else [],
    }
    payment.update(payment_fields)
    return json.dumps({"event": event_type, "payload": {"payment": {"entity": payment}}})


class RecordingNotifier:
    """Collects notifications instead of queueing them."""

    def __init__(self):
        self.sent = []

    def notify(self, user_id, type, title, message, metadata=None):
        self.sent.append(
            {
                "user_id": str(user_id),
                "type": type,
                "title": title,
                "message": message,
                "metadata": metadata or {},
            }
        )

    @property
    def titles(self):
        return [item["title"] for item in self.sent]
