#!/usr/bin/env python
"""Idempotent seed script for the default staff accounts.

Usage:
    python backend/scripts/create_default_users.py                # seed normally
    python backend/scripts/create_default_users.py --show-users   # print accounts with their landing route
    python backend/scripts/create_default_users.py --dry-run      # run logic then rollback (no DB changes)
    python backend/scripts/create_default_users.py --export-permissions -   # role -> permission codes JSON
"""
from __future__ import annotations
import os, sys, argparse, textwrap, json, hashlib
from sqlalchemy import select, text

# Allow running from repo root or backend/
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from sigpe import create_app, get_db  # type: ignore
from sigpe.constants.permissions import ALL_ROLES
from sigpe.models.authz import User
from sigpe.services.policy import role_codes, landing_route
from seeds.default_users import DEFAULT_USERS, DEFAULT_PASSWORD


def ensure_default_users(session):
    created = 0
    for spec in DEFAULT_USERS:
        existing = session.execute(
            select(User).where((User.username == spec['username']) | (User.email == spec['email']))
        ).scalar_one_or_none()
        if existing:
            continue
        fields = {k: v for k, v in spec.items() if k != 'password_env'}
        user = User(**fields)
        user.set_password(os.getenv(spec['password_env'], DEFAULT_PASSWORD))
        session.add(user)
        created += 1
        print(f"[INFO] Created {spec['role']} account {spec['username']} with temporary password.")
    session.flush()
    return created


def print_user_summary(session):
    users = session.execute(select(User).order_by(User.id)).scalars().all()
    if not users:
        print("[INFO] No users present.")
        return
    name_w = max(len(u.username) for u in users)
    print(f"{'User'.ljust(name_w)} | Role      | Landing route")
    print('-' * (name_w + 40))
    for u in users:
        print(f"{u.username.ljust(name_w)} | {u.role.ljust(9)} | {landing_route(u.role, u.type)}")


def build_role_permission_map():
    return {role: sorted(role_codes(role)) for role in ALL_ROLES}


def parse_args(argv=None):
    p = argparse.ArgumentParser(
        description="Create default SIGPE accounts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""Examples:\n  seed normally: create_default_users.py\n  dry run: create_default_users.py --dry-run\n  show users: create_default_users.py --show-users\n""")
    )
    p.add_argument('--show-users', action='store_true', help='Print accounts after seeding')
    p.add_argument('--dry-run', action='store_true', help='Rollback after operations (no commit)')
    p.add_argument('--export-permissions', nargs='?', const='-', metavar='FILE', help='Export role->permission codes JSON (to FILE or stdout)')
    return p.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    app = create_app()
    with app.app_context():
        session = get_db()
        try:
            session.execute(text('SELECT 1 FROM users LIMIT 1'))
        except Exception:
            # Bootstrap schema when migrations have not been run; prefer `alembic upgrade head`
            session.rollback()
            from sigpe.models import Base
            Base.metadata.create_all(session.get_bind())
        finally:
            session.commit()

    with app.app_context():
        session = get_db()
        try:
            created = ensure_default_users(session)
            if args.dry_run:
                session.rollback()
                print(f"[DRY-RUN] (rolled back) Accounts would create: {created}")
            else:
                session.commit()
                print(f"[DONE] Accounts created: {created}")
            if args.show_users:
                print('\nAccount Summary:')
                print_user_summary(session)
            if args.export_permissions is not None:
                role_map = build_role_permission_map()
                canonical = json.dumps(role_map, sort_keys=True, separators=(',', ':'))
                payload = {
                    'roles': role_map,
                    'meta': {'roles_checksum_sha256': hashlib.sha256(canonical.encode('utf-8')).hexdigest()},
                }
                if args.export_permissions == '-':
                    print(json.dumps(payload, indent=2, sort_keys=True))
                else:
                    with open(args.export_permissions, 'w', encoding='utf-8') as f:
                        json.dump(payload, f, indent=2, sort_keys=True)
                    print(f"[INFO] Exported JSON to {args.export_permissions}")
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
    return 0


if __name__ == '__main__':
    sys.exit(main())
