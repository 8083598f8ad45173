from datetime import datetime
from uuid import uuid4
from flask import current_app, render_template, flash
from . import bp
from .forms import MockBookingForm
from ...errors import InvalidInput, StoreUnavailable
from ...extensions import db
from ...models.booking import Booking
from ...services.magic_links import issue_magic_link
from ...services.notification_queue import queue_booking_confirmation


@bp.route("/new", methods=["GET", "POST"])
def new_booking():
    """Mock booking flow: booking row, confirmation email, sign-in link.

    The booking is stored against the email only; it is linked to the user
    when the guest redeems the magic link.
    """
    form = MockBookingForm()
    if not form.validate_on_submit():
        if form.is_submitted():
            flash("Please check your input and try again.", "danger")
        return render_template("bookings/new.html", form=form)

    email = form.email.data.strip().lower()
    booking = Booking(
        external_booking_id=f"mock-{uuid4()}",
        email=email,
        check_in=datetime.combine(form.check_in.data, datetime.min.time()),
        check_out=datetime.combine(form.check_out.data, datetime.min.time()),
        guest_count=form.guest_count.data,
        room_name=form.apartment.data,
        status="confirmed",
    )
    db.session.add(booking)
    db.session.commit()

    try:
        queue_booking_confirmation(email, booking)
        issue_magic_link(email, next_path="/dashboard", full_name=form.name.data.strip())
    except (InvalidInput, StoreUnavailable) as e:
        # the booking stands; the guest can request another link from the login page
        current_app.logger.exception("Failed to queue booking emails for %s: %s", booking.external_booking_id, e)
        flash("Your booking was saved but we could not send the email. Please sign in to receive a new link.", "warning")
    return render_template("auth/check_email.html", email=email, booking=booking)
