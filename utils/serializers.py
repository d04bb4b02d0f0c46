def _iso(value):
    return value.isoformat() if value else None


def provider_summary(p) -> dict:
    return {
        "id": p.id,
        "name": p.name,
        "title": p.title,
        "experience": p.experience,
        "image": p.image,
        "price": {
            "amount": p.price_amount,
            "currency": p.price_currency,
            "duration": p.price_duration,
        },
    }


def serialize_booking(b, employee=None) -> dict:
    out = {
        "id": b.id,
        "user": b.user_id,
        "employee": employee if employee is not None else b.provider_id,
        "employeeName": b.employee_name,
        "employeeTitle": b.employee_title,
        "date": _iso(b.booking_date),
        "time": b.booking_time,
        "channel": b.channel,
        "status": b.status,
        "paymentStatus": b.payment_status,
        "price": {"amount": b.price_amount, "currency": b.price_currency},
        "paymentOrderId": b.payment_order_id,
        "paymentId": b.payment_id,
        "paidAt": _iso(b.paid_at),
        "notes": b.notes,
        "createdAt": _iso(b.created_at),
        "cancelledAt": _iso(b.cancelled_at),
    }
    if b.discount_code:
        out["originalAmount"] = b.original_amount
        out["discountCode"] = b.discount_code
        out["discountAmount"] = b.discount_amount
    return out
