# src/kidguard/scripts/accounts.py
"""
Operator commands for a KidGuard deployment.

    python -m kidguard.scripts.accounts init-db
    python -m kidguard.scripts.accounts add-account 0xabc... staff --name "Front gate"
    python -m kidguard.scripts.accounts add-student CH001 "Ada Lovelace" 0xdef... --grade 3
    python -m kidguard.scripts.accounts verify-chain

Staff accounts are only ever created here; the API never grants the staff role.
"""

from __future__ import annotations

import argparse
import sys

from sqlalchemy.orm import Session

from kidguard.core.security import is_valid_address, normalize_address
from kidguard.db.session import SessionLocal, create_tables
from kidguard.models import Student, WalletAccount
from kidguard.models.directory import ROLES
from kidguard.services.audit_log import AuditLog, SqlAlchemyAuditLogBackend


def register_account(db: Session, wallet: str, role: str, display_name: str | None = None) -> WalletAccount:
    """Create or update the role bound to ``wallet``.

    Args:
        db: Database session
        wallet: 0x-prefixed address
        role: One of parent, pickup or staff
        display_name: Optional label shown to operators

    Returns:
        The stored account row
    """
    if role not in ROLES:
        raise ValueError(f"role must be one of {', '.join(ROLES)}")
    if not is_valid_address(wallet):
        raise ValueError(f"not a wallet address: {wallet!r}")
    address = normalize_address(wallet)
    account = db.get(WalletAccount, address)
    if account is None:
        account = WalletAccount(wallet=address, role=role, display_name=display_name)
        db.add(account)
    else:
        account.role = role
        if display_name is not None:
            account.display_name = display_name
    db.commit()
    return account


def register_student(
    db: Session, student_id: str, name: str, parent_wallet: str, grade: str | None = None
) -> Student:
    if not is_valid_address(parent_wallet):
        raise ValueError(f"not a wallet address: {parent_wallet!r}")
    student = db.get(Student, student_id)
    if student is None:
        student = Student(id=student_id, name=name, grade=grade, parent_wallet=normalize_address(parent_wallet))
        db.add(student)
    else:
        student.name = name
        student.grade = grade
        student.parent_wallet = normalize_address(parent_wallet)
    db.commit()
    return student


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage KidGuard accounts and audit data")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("init-db", help="Create all tables")

    account = commands.add_parser("add-account", help="Bind a role to a wallet")
    account.add_argument("wallet")
    account.add_argument("role", choices=ROLES)
    account.add_argument("--name", dest="display_name", default=None)

    student = commands.add_parser("add-student", help="Register or update a student")
    student.add_argument("student_id")
    student.add_argument("name")
    student.add_argument("parent_wallet")
    student.add_argument("--grade", default=None)

    commands.add_parser("verify-chain", help="Recompute the pickup audit chain")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    if args.command == "init-db":
        create_tables()
        print("[accounts] tables created")
        return 0

    if args.command == "verify-chain":
        audit_log = AuditLog(SqlAlchemyAuditLogBackend(SessionLocal))
        report = audit_log.chain_report()
        if report.valid:
            print(f"[accounts] audit chain intact ({report.length} entries)")
            return 0
        print("[accounts] ERROR: audit chain verification failed", file=sys.stderr)
        return 1

    with SessionLocal() as db:
        try:
            if args.command == "add-account":
                account = register_account(db, args.wallet, args.role, args.display_name)
                print(f"[accounts] {account.wallet} registered as {account.role}")
            else:
                student = register_student(
                    db, args.student_id, args.name, args.parent_wallet, args.grade
                )
                print(f"[accounts] student {student.id} linked to {student.parent_wallet}")
        except ValueError as exc:
            print(f"[accounts] ERROR: {exc}", file=sys.stderr)
            return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
