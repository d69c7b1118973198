from functools import wraps
from typing import Callable, Optional

from flask import (
    Blueprint,
    Response,
    current_app,
    flash,
    redirect,
    render_template,
    request,
    session,
    url_for,
)
from werkzeug.security import check_password_hash, generate_password_hash

from .queries import (
    USER_ROLES,
    assign_user_school,
    create_dashboard_user,
    create_school,
    get_user_by_email,
    update_last_login,
)

auth_bp = Blueprint("auth", __name__)

ROLE_LABELS = {
    "admin": "Administrator",
    "teacher": "Guru",
    "student": "Siswa",
}

MIN_PASSWORD_LENGTH = 6


def current_user() -> Optional[dict]:
    return session.get("user")


def login_required(view: Callable) -> Callable:
    @wraps(view)
    def wrapper(*args, **kwargs):
        if not current_user():
            flash("Silakan login terlebih dahulu.", "warning")
            return redirect(url_for("auth.login", next=request.path))
        return view(*args, **kwargs)

    return wrapper


def role_required(*roles: str) -> Callable:
    def decorator(view: Callable) -> Callable:
        @wraps(view)
        def wrapper(*args, **kwargs):
            user = current_user()
            if not user:
                flash("Silakan login terlebih dahulu.", "warning")
                return redirect(url_for("auth.login", next=request.path))
            if user.get("role") not in roles:
                flash("Anda tidak memiliki akses ke fitur ini.", "danger")
                return redirect(url_for("main.dashboard"))
            return view(*args, **kwargs)

        return wrapper

    return decorator


def _establish_session(user: dict, *, remember: bool = False) -> None:
    """Populate the Flask session with the logged-in dashboard user."""
    raw_student_id = user.get("student_id")
    student_id = None
    if raw_student_id is not None:
        try:
            student_id = int(raw_student_id)
        except (TypeError, ValueError):
            student_id = None

    session["user"] = {
        "id": user["id"],
        "email": (user.get("email") or "").strip().lower(),
        "full_name": user.get("full_name"),
        "role": user.get("role"),
        "school_id": user.get("school_id"),
        "student_id": student_id,
    }
    session.permanent = remember
    update_last_login(user["id"])


@auth_bp.route("/login", methods=["GET", "POST"])
def login() -> Response:
    if current_user():
        return redirect(url_for("main.dashboard"))

    if request.method == "POST":
        email = (request.form.get("email") or "").strip().lower()
        password = request.form.get("password") or ""
        remember = request.form.get("remember") == "on"

        user = get_user_by_email(email)
        if not user or not check_password_hash(user["password_hash"], password):
            flash("Email atau password tidak valid.", "danger")
            return render_template("login.html", email=email)

        _establish_session(dict(user), remember=remember)
        current_app.logger.info("Login dashboard: %s", email)
        flash("Selamat datang kembali!", "success")
        return redirect(request.args.get("next") or url_for("main.dashboard"))

    return render_template("login.html")


@auth_bp.route("/signup", methods=["GET", "POST"])
def signup() -> Response:
    if current_user():
        return redirect(url_for("main.dashboard"))

    if request.method == "POST":
        email = (request.form.get("email") or "").strip().lower()
        full_name = (request.form.get("full_name") or "").strip()
        password = request.form.get("password") or ""
        role = (request.form.get("role") or "").strip().lower()

        if not all([email, full_name, password]):
            flash("Semua field wajib diisi.", "warning")
            return render_template("signup.html", email=email, full_name=full_name, role=role)
        if len(password) < MIN_PASSWORD_LENGTH:
            flash(f"Password minimal {MIN_PASSWORD_LENGTH} karakter.", "warning")
            return render_template("signup.html", email=email, full_name=full_name, role=role)
        if role not in USER_ROLES:
            flash("Pilih peran akun yang valid.", "warning")
            return render_template("signup.html", email=email, full_name=full_name, role=role)
        if get_user_by_email(email):
            flash("Email tersebut sudah terdaftar.", "danger")
            return render_template("signup.html", email=email, full_name=full_name, role=role)

        password_hash = generate_password_hash(password, method="pbkdf2:sha256", salt_length=12)
        try:
            user_id = create_dashboard_user(
                email=email,
                full_name=full_name,
                password_hash=password_hash,
                role=role,
            )
            school_id = None
            if role == "admin":
                school_id = create_school(str(user_id), created_by=user_id)
                assign_user_school(user_id, school_id)
        except Exception:
            current_app.logger.exception("Gagal mendaftarkan akun %s", email)
            flash("Gagal membuat akun baru. Silakan coba lagi.", "danger")
            return render_template("signup.html", email=email, full_name=full_name, role=role)

        _establish_session(
            {
                "id": user_id,
                "email": email,
                "full_name": full_name,
                "role": role,
                "school_id": school_id,
            }
        )
        flash("Akun berhasil dibuat.", "success")
        if role == "admin":
            return redirect(url_for("main.setup_school"))
        return redirect(url_for("main.dashboard"))

    return render_template("signup.html")


@auth_bp.route("/logout")
@login_required
def logout() -> Response:
    session.clear()
    flash("Anda telah logout.", "info")
    return redirect(url_for("auth.login"))
