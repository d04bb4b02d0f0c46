class BookingError(Exception):
    """Base error for the booking core. Routes render it as JSON with ``status_code``."""

    status_code = 400

    def __init__(self, message: str, status_code: int = None, details=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details

    def to_dict(self) -> dict:
        out = {"error": self.message}
        if self.details:
            out["details"] = self.details
        return out


class ValidationError(BookingError):
    status_code = 400


class ProviderNotFound(BookingError):
    status_code = 404

    def __init__(self, provider_id):
        super().__init__("Employee not found")
        self.provider_id = provider_id


class BookingNotFound(BookingError):
    status_code = 404

    def __init__(self, booking_id):
        super().__init__("Booking not found")
        self.booking_id = booking_id


class SlotNotFound(BookingError):
    status_code = 404

    def __init__(self, provider_id, date, time, channel):
        super().__init__("Slot not found")
        self.key = (provider_id, date, time, channel)


class Forbidden(BookingError):
    status_code = 403

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


class SlotUnavailable(BookingError):
    """The requested slot is booked, on another channel, or does not exist."""

    status_code = 400

    def __init__(self, provider_id, date, time, channel):
        super().__init__("Selected slot is not available")
        self.key = (provider_id, date, time, channel)


class BookingStateError(BookingError):
    status_code = 400


class SignatureMismatch(BookingError):
    status_code = 400

    def __init__(self, booking_id):
        super().__init__("Payment verification failed")
        self.booking_id = booking_id


class GatewayError(BookingError):
    status_code = 500
