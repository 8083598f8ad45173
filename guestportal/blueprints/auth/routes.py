from flask import current_app, render_template, request, redirect, url_for, flash
from flask_login import login_user, logout_user, login_required, current_user
from . import bp
from .forms import LoginForm
from ...errors import InvalidInput, StoreUnavailable
from ...services.magic_links import issue_magic_link, redeem_magic_link


@bp.route("/login", methods=["GET", "POST"])
def login():
    if current_user.is_authenticated:
        return redirect(url_for("index"))
    form = LoginForm(next=request.args.get("next", ""))
    if form.validate_on_submit():
        try:
            issue_magic_link(form.email.data, next_path=form.next.data or None)
        except (InvalidInput, StoreUnavailable) as e:
            current_app.logger.warning("Magic link request failed for %s: %s", form.email.data, e)
            flash("We could not send a sign-in link. Please try again.", "danger")
            return render_template("auth/login.html", form=form), 400
        return render_template("auth/check_email.html", email=form.email.data)
    return render_template("auth/login.html", form=form)


@bp.get("/callback")
def callback():
    user, next_path = redeem_magic_link(request.args.get("token"))
    if user is None:
        flash("This sign-in link is invalid or has expired.", "danger")
        return redirect(url_for("auth.login"))
    login_user(user)
    current_app.logger.info("User %s signed in via magic link", user.id)
    if user.is_admin:
        return redirect(url_for("admin.index"))
    if not user.onboarding_completed:
        return redirect(url_for("guest.onboarding"))
    return redirect(next_path or url_for("guest.dashboard"))


@bp.route("/logout", methods=["POST"])
@login_required
def logout():
    logout_user()
    return redirect(url_for("auth.login"))
