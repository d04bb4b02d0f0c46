from models import db
from models.slot import Slot
from services.errors import SlotNotFound, SlotUnavailable


class SlotStore:
    """Slot collection of one provider.

    Mutations are flushed into the current session; the caller owns the
    commit so that a reservation and the booking row land together.
    """

    def __init__(self, provider_id: int):
        self.provider_id = provider_id

    def _key_query(self, date, time: str, channel: str):
        return Slot.query.filter_by(
            provider_id=self.provider_id, date=date, time=time, channel=channel
        )

    def all(self):
        return (
            Slot.query
            .filter_by(provider_id=self.provider_id)
            .order_by(Slot.date.asc(), Slot.id.asc())
            .all()
        )

    def find_available(self, date, time: str, channel: str):
        return self._key_query(date, time, channel).filter_by(is_booked=False).first()

    def mark_booked(self, date, time: str, channel: str) -> None:
        # Conditional update: only one concurrent caller can see rowcount == 1
        updated = (
            self._key_query(date, time, channel)
            .filter(Slot.is_booked.is_(False))
            .update({Slot.is_booked: True}, synchronize_session="fetch")
        )
        if updated == 1:
            db.session.flush()
            return

        if self._key_query(date, time, channel).first() is None:
            raise SlotNotFound(self.provider_id, date, time, channel)
        raise SlotUnavailable(self.provider_id, date, time, channel)

    def mark_available(self, date, time: str, channel: str) -> bool:
        """Release a slot. Missing slots are ignored; returns whether one matched."""
        slot = self._key_query(date, time, channel).first()
        if slot is None:
            return False
        slot.is_booked = False
        db.session.flush()
        return True
