"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, so the services never hold ORM rows
and the schema can change without touching the domain layer.
"""

from fintrack.domain import entities as domain
from fintrack.database.models import (
    Entity as ORMEntity,
    Account as ORMAccount,
    BusinessPartner as ORMBusinessPartner,
    TransactionType as ORMTransactionType,
    Category as ORMCategory,
    RawTransaction as ORMRawTransaction,
    MainTransaction as ORMMainTransaction,
    Checkpoint as ORMCheckpoint,
    Drawdown as ORMDrawdown,
    InvestmentContribution as ORMInvestmentContribution,
)


def entity_to_domain(orm_entity: ORMEntity) -> domain.Entity:
    """Convert SQLAlchemy Entity model to domain Entity."""
    return domain.Entity(
        id=orm_entity.id,
        name=orm_entity.name,
        created_at=orm_entity.created_at,
    )


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        entity_id=orm_account.entity_id,
        name=orm_account.name,
        account_type=orm_account.account_type,
        currency=orm_account.currency,
        credit_limit=orm_account.credit_limit,
        is_active=orm_account.is_active,
        created_at=orm_account.created_at,
    )


def partner_to_domain(orm_partner: ORMBusinessPartner) -> domain.BusinessPartner:
    """Convert SQLAlchemy BusinessPartner model to domain entity."""
    return domain.BusinessPartner(
        id=orm_partner.id,
        entity_id=orm_partner.entity_id,
        name=orm_partner.name,
        created_at=orm_partner.created_at,
    )


def transaction_type_to_domain(orm_type: ORMTransactionType) -> domain.TransactionType:
    """Convert SQLAlchemy TransactionType model to domain entity."""
    return domain.TransactionType(
        id=orm_type.id,
        type_code=orm_type.type_code,
        name=orm_type.name,
    )


def category_to_domain(orm_category: ORMCategory) -> domain.Category:
    """Convert SQLAlchemy Category model to domain Category entity."""
    return domain.Category(
        id=orm_category.id,
        name=orm_category.name,
        parent_id=orm_category.parent_id,
        created_at=orm_category.created_at,
    )


def raw_transaction_to_domain(orm_raw: ORMRawTransaction) -> domain.RawTransaction:
    """Convert SQLAlchemy RawTransaction model to domain entity."""
    return domain.RawTransaction(
        raw_transaction_id=orm_raw.raw_transaction_id,
        account_id=orm_raw.account_id,
        transaction_date=orm_raw.transaction_date,
        description=orm_raw.description,
        debit_amount=orm_raw.debit_amount,
        credit_amount=orm_raw.credit_amount,
        balance=orm_raw.balance,
        is_balance_adjustment=orm_raw.is_balance_adjustment,
        checkpoint_id=orm_raw.checkpoint_id,
        transaction_sequence=orm_raw.transaction_sequence,
        transaction_source=orm_raw.transaction_source,
        notes=orm_raw.notes,
        created_at=orm_raw.created_at,
    )


def main_transaction_to_domain(orm_main: ORMMainTransaction) -> domain.MainTransaction:
    """Convert SQLAlchemy MainTransaction model to domain entity."""
    return domain.MainTransaction(
        id=orm_main.id,
        raw_transaction_id=orm_main.raw_transaction_id,
        account_id=orm_main.account_id,
        transaction_type_id=orm_main.transaction_type_id,
        category_id=orm_main.category_id,
        amount=orm_main.amount,
        transaction_direction=orm_main.transaction_direction,
        transaction_date=orm_main.transaction_date,
        description=orm_main.description,
        notes=orm_main.notes,
        is_split=orm_main.is_split,
        split_sequence=orm_main.split_sequence,
        transfer_matched_transaction_id=orm_main.transfer_matched_transaction_id,
        drawdown_id=orm_main.drawdown_id,
        transaction_subtype=orm_main.transaction_subtype,
        credit_memo_of_drawdown_id=orm_main.credit_memo_of_drawdown_id,
        investment_contribution_id=orm_main.investment_contribution_id,
        updated_at=orm_main.updated_at,
    )


def checkpoint_to_domain(orm_checkpoint: ORMCheckpoint) -> domain.Checkpoint:
    """Convert SQLAlchemy Checkpoint model to domain entity."""
    return domain.Checkpoint(
        id=orm_checkpoint.id,
        account_id=orm_checkpoint.account_id,
        checkpoint_date=orm_checkpoint.checkpoint_date,
        declared_balance=orm_checkpoint.declared_balance,
        calculated_balance=orm_checkpoint.calculated_balance,
        adjustment_amount=orm_checkpoint.adjustment_amount,
        is_reconciled=orm_checkpoint.is_reconciled,
        import_batch_id=orm_checkpoint.import_batch_id,
        notes=orm_checkpoint.notes,
        created_at=orm_checkpoint.created_at,
    )


def drawdown_to_domain(orm_drawdown: ORMDrawdown) -> domain.Drawdown:
    """Convert SQLAlchemy Drawdown model to domain entity."""
    return domain.Drawdown(
        id=orm_drawdown.id,
        kind=orm_drawdown.kind,
        account_id=orm_drawdown.account_id,
        partner_id=orm_drawdown.partner_id,
        reference=orm_drawdown.reference,
        drawdown_date=orm_drawdown.drawdown_date,
        due_date=orm_drawdown.due_date,
        principal_amount=orm_drawdown.principal_amount,
        remaining_balance=orm_drawdown.remaining_balance,
        written_off_amount=orm_drawdown.written_off_amount,
        overpayment_amount=orm_drawdown.overpayment_amount,
        status=orm_drawdown.status,
        notes=orm_drawdown.notes,
        created_at=orm_drawdown.created_at,
    )


def investment_contribution_to_domain(
    orm_contribution: ORMInvestmentContribution,
) -> domain.InvestmentContribution:
    """Convert SQLAlchemy InvestmentContribution model to domain entity."""
    return domain.InvestmentContribution(
        id=orm_contribution.id,
        entity_id=orm_contribution.entity_id,
        investment_account_id=orm_contribution.investment_account_id,
        source_account_id=orm_contribution.source_account_id,
        contribution_amount=orm_contribution.contribution_amount,
        withdrawn_amount=orm_contribution.withdrawn_amount,
        contribution_date=orm_contribution.contribution_date,
        status=orm_contribution.status,
        notes=orm_contribution.notes,
        created_at=orm_contribution.created_at,
    )
