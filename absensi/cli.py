import argparse
import getpass
import sys

from werkzeug.security import generate_password_hash

from .auth import MIN_PASSWORD_LENGTH
from .queries import (
    USER_ROLES,
    assign_user_school,
    create_dashboard_user,
    create_school,
    get_school,
    get_user_by_email,
)
from .schema import ensure_dashboard_schema


def _handle_init_db(_args: argparse.Namespace) -> None:
    ensure_dashboard_schema()
    print("Schema dashboard siap dipakai (tabel sekolah, siswa dan absensi dibuat bila belum ada).")


def _handle_create_school(args: argparse.Namespace) -> None:
    if get_school(args.school_id):
        print(f"Sekolah dengan ID {args.school_id} sudah ada.")
        sys.exit(1)
    create_school(
        args.school_id,
        name=args.name,
        address=args.address,
        npsn=args.npsn,
        principal_name=args.principal_name,
        principal_nip=args.principal_nip,
    )
    print(f"Sekolah {args.name} berhasil dibuat dengan ID {args.school_id}.")


def _handle_create_user(args: argparse.Namespace) -> None:
    email = args.email.strip().lower()
    if get_user_by_email(email):
        print("Email tersebut sudah terdaftar.")
        sys.exit(1)
    if args.role == "student" and args.student_id is None:
        print("Akun siswa wajib menyertakan --student-id.")
        sys.exit(1)

    password = args.password or getpass.getpass("Password: ")
    if len(password) < MIN_PASSWORD_LENGTH:
        print(f"Password minimal {MIN_PASSWORD_LENGTH} karakter.")
        sys.exit(1)

    password_hash = generate_password_hash(password, method="pbkdf2:sha256", salt_length=12)
    new_id = create_dashboard_user(
        email=email,
        full_name=args.full_name,
        password_hash=password_hash,
        role=args.role,
        school_id=args.school_id,
        student_id=args.student_id,
        nip=args.nip,
    )
    if args.role == "admin" and not args.school_id:
        school_id = create_school(str(new_id), created_by=new_id)
        assign_user_school(new_id, school_id)
        print(f"Sekolah kosong dibuat dengan ID {school_id}.")
    print(f"User berhasil dibuat dengan ID {new_id} dan role {args.role}.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Absensi dashboard management CLI")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("init-db", help="Create dashboard tables if missing")

    school = subparsers.add_parser("create-school", help="Create a school (tenant)")
    school.add_argument("school_id", help="Identifier sekolah")
    school.add_argument("name", help="Nama sekolah")
    school.add_argument("--address", default="", help="Alamat sekolah")
    school.add_argument("--npsn", default="", help="Nomor Pokok Sekolah Nasional")
    school.add_argument("--principal-name", default="", help="Nama kepala sekolah")
    school.add_argument("--principal-nip", help="NIP kepala sekolah")

    create = subparsers.add_parser("create-user", help="Create dashboard user")
    create.add_argument("email", help="Email for login")
    create.add_argument("full_name", help="Display name")
    create.add_argument(
        "--role",
        default="admin",
        choices=list(USER_ROLES),
        help="Role for the user",
    )
    create.add_argument("--school-id", help="Sekolah tempat user terdaftar")
    create.add_argument("--student-id", type=int, help="ID siswa untuk akun role student")
    create.add_argument("--nip", help="NIP guru")
    create.add_argument("--password", help="Plain password. If omitted, prompt securely.")
    return parser


def main(argv=None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "init-db":
        _handle_init_db(args)
    elif args.command == "create-school":
        _handle_create_school(args)
    elif args.command == "create-user":
        _handle_create_user(args)
    else:
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    main()
