import os
import time
from flask import current_app, render_template, request, redirect, url_for, jsonify, send_from_directory
from flask_login import login_required, current_user
from . import bp
from .forms import OnboardingForm
from ...extensions import db
from ...models.booking import Booking
from ...models.host_contact import HostContact
from ...services.countdown import calculate_countdown, next_booking
from ...services.storage import save_avatar
from ...services.weather import get_weather_client
from ...utils.clock import utcnow


def instagram_config():
    username = current_app.config.get("INSTAGRAM_USERNAME")
    return {
        "username": username,
        "embedUrl": f"https://www.instagram.com/{username}/embed/",
        "profileUrl": f"https://www.instagram.com/{username}/",
    }


@bp.route("/onboarding", methods=["GET", "POST"])
@login_required
def onboarding():
    if current_user.onboarding_completed and request.method == "GET":
        return redirect(url_for("guest.dashboard"))
    form = OnboardingForm(obj=current_user)
    if form.validate_on_submit():
        current_user.full_name = form.full_name.data.strip()
        current_user.phone = (form.phone.data or "").strip() or None
        current_user.interests = form.interests.data or []
        current_user.notification_preferences = {
            "email": bool(form.notify_email.data),
            "news": bool(form.notify_news.data),
        }
        current_user.onboarding_completed_at = utcnow()
        db.session.commit()
        current_app.logger.info("User %s completed onboarding", current_user.id)
        return redirect(url_for("guest.dashboard"))
    return render_template("guest/onboarding.html", form=form)


@bp.get("/dashboard")
@login_required
def dashboard():
    if not current_user.onboarding_completed:
        return redirect(url_for("guest.onboarding"))
    return render_template("guest/dashboard.html", data=build_dashboard(current_user))


def build_dashboard(user):
    started = time.monotonic()
    bookings = (Booking.query.filter_by(guest_user_id=user.id)
                .order_by(Booking.created_at.desc()).all())
    contacts = (HostContact.query.filter_by(is_active=True)
                .order_by(HostContact.created_at.desc()).all())
    weather = get_weather_client().get_weather()
    countdown = calculate_countdown(next_booking(bookings))
    elapsed_ms = int((time.monotonic() - started) * 1000)
    if elapsed_ms > 300:
        current_app.logger.warning("Dashboard slow response: %sms", elapsed_ms)
    return {
        "user": {
            "id": user.id,
            "email": user.email,
            "fullName": user.full_name,
            "phone": user.phone,
            "avatarUrl": user.avatar_url,
            "role": user.role,
        },
        "bookings": [b.to_dict() for b in bookings],
        "hostContacts": [c.to_dict() for c in contacts],
        "countdown": countdown,
        "weather": weather,
        "instagram": instagram_config(),
        "meta": {"fetchedAt": utcnow().isoformat() + "Z", "responseTime": elapsed_ms},
    }


@bp.get("/api/dashboard")
@login_required
def dashboard_api():
    return jsonify(build_dashboard(current_user))


@bp.post("/api/upload-avatar")
@login_required
def upload_avatar():
    f = request.files.get("file")
    if not f or not f.filename:
        return jsonify({"error": "No file uploaded"}), 400
    try:
        url = save_avatar(f, current_user.id)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    current_user.avatar_url = url
    db.session.commit()
    return jsonify({"url": url})


@bp.get("/uploads/<path:filename>")
@login_required
def uploaded_file(filename):
    return send_from_directory(os.path.abspath(current_app.config["LOCAL_STORAGE_DIR"]), filename)
