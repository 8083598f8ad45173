from ..utils.clock import utcnow


def calculate_countdown(booking, now=None):
    """Time left until ``booking.check_in``.

    Months are counted as 30 days. Returns ``None`` without a booking or
    when check-in has already passed.
    """
    if booking is None or booking.check_in is None:
        return None
    now = now or utcnow()
    diff = booking.check_in - now
    total_seconds = int(diff.total_seconds())
    if total_seconds < 0:
        return None

    total_minutes = total_seconds // 60
    total_hours = total_minutes // 60
    total_days = total_hours // 24
    return {
        "checkInDate": booking.check_in.isoformat(),
        "checkOutDate": booking.check_out.isoformat() if booking.check_out else None,
        "months": total_days // 30,
        "days": total_days % 30,
        "hours": total_hours % 24,
        "minutes": total_minutes % 60,
        "seconds": total_seconds % 60,
        "totalDays": total_days,
        "guestCount": booking.guest_count or 0,
        "roomName": booking.room_name or "Unknown",
    }


def next_booking(bookings, now=None):
    """Earliest confirmed booking whose check-in is still ahead."""
    now = now or utcnow()
    upcoming = [b for b in bookings
                if b.status == "confirmed" and b.check_in is not None and b.check_in >= now]
    return min(upcoming, key=lambda b: b.check_in) if upcoming else None
