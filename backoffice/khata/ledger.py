"""
Khata ledger service.

Sign convention for ledger transactions:
    amount > 0  the shop owes the party
    amount < 0  the party owes the shop
Payments are unsigned amounts the shop paid to the party, so

    balance = sum(approved transactions) - sum(approved payments)

and a positive balance is still money the shop owes.
"""
import logging
from collections import namedtuple
from decimal import Decimal

from django.db import transaction
from django.db.models import Sum
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from backoffice.core.exceptions import EntryAlreadyDecided, PartyNotApproved
from backoffice.core.permissions import is_admin_user, require
from backoffice.core.utils import create_audit_log, next_document_number
from .models import (
    ApprovalStatus,
    Vyapari, VyapariTransaction, VyapariPayment,
    Karigar, KarigarTransaction, KarigarPayment,
)

logger = logging.getLogger(__name__)

LedgerBook = namedtuple('LedgerBook', [
    'kind', 'label', 'party_model', 'transaction_model', 'payment_model',
    'party_field', 'transaction_prefix', 'payment_prefix',
])

BOOKS = {
    'vyapari': LedgerBook(
        kind='vyapari',
        label='Trader',
        party_model=Vyapari,
        transaction_model=VyapariTransaction,
        payment_model=VyapariPayment,
        party_field='vyapari',
        transaction_prefix='VT',
        payment_prefix='VP',
    ),
    'karigar': LedgerBook(
        kind='karigar',
        label='Artisan',
        party_model=Karigar,
        transaction_model=KarigarTransaction,
        payment_model=KarigarPayment,
        party_field='karigar',
        transaction_prefix='KT',
        payment_prefix='KP',
    ),
}

DECISIONS = (ApprovalStatus.APPROVED, ApprovalStatus.REJECTED)


def get_book(kind):
    try:
        return BOOKS[kind]
    except KeyError:
        raise ValueError(f"Unknown ledger book: {kind}")


def book_for_party(party):
    for book in BOOKS.values():
        if isinstance(party, book.party_model):
            return book
    raise ValueError(f"Not a ledger party: {party!r}")


def create_party(book, user, **fields):
    """Create a party; parties created by an admin skip the approval queue"""
    auto_approve = is_admin_user(user)
    party = book.party_model.objects.create(
        created_by=user,
        approval_status=ApprovalStatus.APPROVED if auto_approve else ApprovalStatus.PENDING,
        approved_by=user if auto_approve else None,
        approved_at=timezone.now() if auto_approve else None,
        **fields
    )
    logger.info(f"{book.label} {party.name} created by {user.username} (approval={party.approval_status})")
    return party


def _guarded_decision(queryset, decision, user, extra=None):
    """Move a Pending row to a terminal status; returns the number of rows changed"""
    values = {
        'approval_status': decision,
        'approved_by': user,
        'approved_at': timezone.now(),
    }
    values.update(extra or {})
    return queryset.filter(approval_status=ApprovalStatus.PENDING).update(**values)


def decide_party(book, pk, decision, user, request=None):
    require(user, 'ledger.approve')
    if decision not in DECISIONS:
        raise ValidationError({'status': f"Status must be one of {', '.join(DECISIONS)}"})
    party = book.party_model.objects.get(pk=pk)
    # Rejected parties are also deactivated
    extra = {'status': 'Inactive'} if decision == ApprovalStatus.REJECTED else None
    changed = _guarded_decision(book.party_model.objects.filter(pk=pk), decision, user, extra)
    if not changed:
        raise EntryAlreadyDecided(f"{book.label} {party.name} is already {party.approval_status.lower()}.")
    party.refresh_from_db()
    create_audit_log(
        request=request,
        user=user,
        action='party_approve' if decision == ApprovalStatus.APPROVED else 'party_reject',
        model_name=book.party_model.__name__,
        object_id=party.pk,
        object_name=party.name,
    )
    return party


def _require_approved_party(book, party):
    if party is None or not party.is_approved:
        raise PartyNotApproved(f"{book.label} not found or not approved.")


def record_transaction(book, party, amount, description, user, items=None, auto_approve=None):
    """
    Append a signed ledger transaction for an approved party.

    Entries recorded by an admin (or with auto_approve=True) are approved
    immediately; others wait in the approval queue.
    """
    _require_approved_party(book, party)
    if not description or not str(description).strip():
        raise ValidationError({'description': 'Description is required'})
    amount = Decimal(str(amount))
    if amount == 0:
        raise ValidationError({'amount': 'Amount must not be zero'})

    if auto_approve is None:
        auto_approve = is_admin_user(user)

    entry = book.transaction_model.objects.create(
        transaction_id=next_document_number(book.transaction_prefix),
        description=str(description).strip(),
        amount=amount,
        items=items or None,
        approval_status=ApprovalStatus.APPROVED if auto_approve else ApprovalStatus.PENDING,
        created_by=user,
        approved_by=user if auto_approve else None,
        approved_at=timezone.now() if auto_approve else None,
        **{book.party_field: party}
    )
    logger.info(f"Ledger transaction {entry.transaction_id} ({amount}) recorded for {book.kind} {party.pk}")
    return entry


def record_payment(book, party, amount, payment_mode, user, reference_number=None, notes=None):
    """Record a payment made by the shop to an approved party"""
    _require_approved_party(book, party)
    amount = Decimal(str(amount))
    if amount <= 0:
        raise ValidationError({'amount': 'Amount must be greater than zero'})
    if not payment_mode:
        raise ValidationError({'payment_mode': 'Payment mode is required'})

    auto_approve = is_admin_user(user)
    payment = book.payment_model.objects.create(
        payment_id=next_document_number(book.payment_prefix),
        amount=amount,
        payment_mode=payment_mode,
        reference_number=reference_number or None,
        notes=notes or None,
        approval_status=ApprovalStatus.APPROVED if auto_approve else ApprovalStatus.PENDING,
        created_by=user,
        approved_by=user if auto_approve else None,
        approved_at=timezone.now() if auto_approve else None,
        **{book.party_field: party}
    )
    logger.info(f"Ledger payment {payment.payment_id} ({amount}) recorded for {book.kind} {party.pk}")
    return payment


def decide_entry(book, entry_model, pk, decision, user, request=None):
    """Approve or reject a pending ledger transaction or payment exactly once"""
    require(user, 'ledger.approve')
    if decision not in DECISIONS:
        raise ValidationError({'status': f"Status must be one of {', '.join(DECISIONS)}"})
    entry = entry_model.objects.get(pk=pk)
    changed = _guarded_decision(entry_model.objects.filter(pk=pk), decision, user)
    if not changed:
        raise EntryAlreadyDecided(f"Entry is already {entry.approval_status.lower()}.")
    entry.refresh_from_db()
    reference = getattr(entry, 'transaction_id', None) or getattr(entry, 'payment_id', None)
    create_audit_log(
        request=request,
        user=user,
        action='ledger_approve' if decision == ApprovalStatus.APPROVED else 'ledger_reject',
        model_name=entry_model.__name__,
        object_id=entry.pk,
        object_reference=reference,
        changes={'amount': str(entry.amount)},
    )
    return entry


def _sum(queryset, status=None):
    if status is not None:
        queryset = queryset.filter(approval_status=status)
    return queryset.aggregate(total=Sum('amount'))['total'] or Decimal('0.00')


def party_balance(party):
    """Approved balance plus what is still waiting for approval"""
    transactions = party.transactions.all()
    payments = party.payments.all()

    total_transactions = _sum(transactions, ApprovalStatus.APPROVED)
    total_payments = _sum(payments, ApprovalStatus.APPROVED)
    balance = total_transactions - total_payments

    return {
        'party_id': party.pk,
        'name': party.name,
        'total_transactions': total_transactions,
        'total_payments': total_payments,
        'balance': balance,
        'shop_owes': balance if balance > 0 else Decimal('0.00'),
        'party_owes': -balance if balance < 0 else Decimal('0.00'),
        'pending_transactions': _sum(transactions, ApprovalStatus.PENDING),
        'pending_payments': _sum(payments, ApprovalStatus.PENDING),
    }


def force_delete_party(book, party, user):
    """Delete a party with every transaction and payment recorded against it"""
    require(user, 'ledger.force_delete')
    with transaction.atomic():
        transactions_deleted, _ = party.transactions.all().delete()
        payments_deleted, _ = party.payments.all().delete()
        party.delete()
    logger.warning(
        f"{book.label} force-deleted by {user.username} "
        f"({transactions_deleted} transactions, {payments_deleted} payments)"
    )
    return {'transactions': transactions_deleted, 'payments': payments_deleted}


def find_approved_karigar(name):
    """Approved artisan whose name matches a product supplier, if any"""
    if not name or not name.strip():
        return None
    return Karigar.objects.filter(
        name__iexact=name.strip(),
        approval_status=ApprovalStatus.APPROVED,
    ).first()
