"""Tests for the command line interface."""

import re

import pytest
from fintrack.cli.main import cli


def extract_id(output: str) -> int:
    """Pull the first '(ID: n)' or '(main ID: n)' out of command output."""
    match = re.search(r"ID: (\d+)\)", output)
    assert match, output
    return int(match.group(1))


@pytest.fixture
def run(cli_runner, temp_db):
    """Invoke the CLI against the temporary database."""

    def _run(*args, input=None):
        return cli_runner.invoke(cli, ["--db-path", temp_db.database_path, *args], input=input)

    return _run


@pytest.fixture
def setup_books(run):
    """Initialize types and create an entity, accounts and a partner."""
    assert run("init").exit_code == 0
    entity_id = extract_id(run("entity", "create", "Acme Ltd").output)
    ids = {"entity": entity_id}
    for name, account_type in [
        ("Main Bank", "bank"),
        ("Savings", "bank"),
        ("Loans", "loan_receivable"),
    ]:
        result = run("account", "create", name, "--entity", str(entity_id), "--type", account_type)
        assert result.exit_code == 0, result.output
        ids[name] = extract_id(result.output)
    ids["partner"] = extract_id(
        run("partner", "create", "Borrower Co", "--entity", str(entity_id)).output
    )
    return ids


def test_help_does_not_need_database(cli_runner):
    """Test that --help works without opening a database."""
    result = cli_runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    assert "reconcile" in result.output
    assert "drawdown" in result.output


def test_init_is_idempotent(run):
    """Test seeding transaction types twice."""
    first = run("init")
    assert first.exit_code == 0
    assert "Created 13 transaction type(s)" in first.output

    second = run("init")
    assert second.exit_code == 0
    assert "already initialized" in second.output


def test_account_commands(run, setup_books):
    """Test creating, listing and deactivating accounts."""
    result = run("account", "list")
    assert result.exit_code == 0
    assert "Main Bank" in result.output
    assert "loan_receivable" in result.output

    result = run("account", "deactivate", "Savings")
    assert result.exit_code == 0
    assert "Savings" not in run("account", "list").output
    assert "(inactive)" in run("account", "list", "--all").output


def test_account_create_invalid_entity(run):
    """Test domain errors are reported with exit code 1."""
    result = run("account", "create", "Main Bank", "--entity", "42", "--type", "bank")
    assert result.exit_code == 1
    assert "Error: Entity 42 not found" in result.output


def test_unknown_account_name(run, setup_books):
    """Test resolving a missing account name."""
    result = run("txn", "add", "Nope", "--debit", "100")
    assert result.exit_code == 1
    assert "Account 'Nope' not found" in result.output


def test_transfer_match_and_unmatch(run, setup_books):
    """Test the transfer flow end to end."""
    out = run("txn", "add", "Main Bank", "--debit", "500,000", "--type", "TRF_OUT", "--date", "2025-01-15")
    into = run("txn", "add", "Savings", "--credit", "500,000", "--type", "trf_in", "--date", "2025-01-15")
    assert out.exit_code == 0 and into.exit_code == 0
    out_id, in_id = extract_id(out.output), extract_id(into.output)

    result = run("transfer", "unmatched")
    assert f"ID: {out_id}" in result.output

    result = run("transfer", "match", str(out_id), str(in_id))
    assert result.exit_code == 0
    assert "as transfer" in result.output

    result = run("transfer", "match", str(out_id), str(in_id))
    assert result.exit_code == 1
    assert "already matched" in result.output

    result = run("transfer", "unmatch", str(in_id))
    assert result.exit_code == 0
    assert f"Unmatched {out_id} and {in_id}" in result.output


def test_split_commands(run, setup_books):
    """Test applying, showing and undoing a split."""
    result = run("txn", "add", "Main Bank", "--debit", "1000000", "--id", "STMT-1", "--date", "2025-01-15")
    assert result.exit_code == 0

    result = run("split", "apply", "STMT-1", "--item", "600000", "--item", "300000")
    assert result.exit_code == 1
    assert "sum to" in result.output

    result = run("split", "apply", "STMT-1", "--item", "600000:EXP", "--item", "400000")
    assert result.exit_code == 0
    assert "into 2 items" in result.output

    result = run("split", "show", "STMT-1")
    assert "#2" in result.output

    result = run("split", "undo", "STMT-1")
    assert result.exit_code == 0


def test_disbursement_collection_and_write_off(run, setup_books):
    """Test a loan from disbursement through collection and write-off."""
    partner = str(setup_books["partner"])
    result = run(
        "drawdown", "disburse", "Main Bank", "Loans", "1,000,000",
        "--partner", partner, "--date", "2025-01-10", "--reference", "LOAN-1",
    )
    assert result.exit_code == 0, result.output
    drawdown_id = extract_id(result.output)

    payment = run("txn", "add", "Main Bank", "--credit", "400000", "--type", "LOAN_COLLECT", "--date", "2025-02-10")
    payment_id = extract_id(payment.output)

    result = run("transfer", "settle", str(payment_id), str(drawdown_id))
    assert result.exit_code == 0
    assert "Remaining balance: 600,000.00 (active)" in result.output

    result = run("drawdown", "write-off", str(drawdown_id), "600000", "--date", "2025-03-01")
    assert result.exit_code == 0
    assert "(written_off)" in result.output

    result = run("drawdown", "show", str(drawdown_id))
    assert result.exit_code == 0
    assert "LOAN-1" in result.output
    assert "Warning" not in result.output

    result = run("drawdown", "list", "--status", "written_off")
    assert "LOAN-1" in result.output


def test_drawdown_validation_error(run, setup_books):
    """Test that a wrong account type is reported."""
    result = run(
        "drawdown", "create", "Main Bank", "Loans", "100", "--partner", str(setup_books["partner"]),
    )
    assert result.exit_code == 1
    assert "Error:" in result.output


def test_checkpoint_and_reconcile(run, setup_books):
    """Test declaring balances and reconciling them."""
    run("checkpoint", "set", "Main Bank", "1000", "--date", "2025-01-01")
    run("txn", "add", "Main Bank", "--credit", "500", "--date", "2025-01-05")
    run("txn", "add", "Main Bank", "--debit", "200", "--date", "2025-01-05")
    result = run("checkpoint", "set", "Main Bank", "1400", "--date", "2025-01-10")
    assert result.exit_code == 0
    assert "adjustment of 1,100.00 recorded" in result.output

    result = run("checkpoint", "list", "Main Bank")
    assert result.exit_code == 0
    assert "Total: 2" in result.output

    result = run("reconcile", "Main Bank", "-v")
    assert result.exit_code == 0
    assert "Found 1 discrepancy(ies)" in result.output
    assert "difference 100.00" in result.output
    assert "[adj]" in result.output


def test_reconcile_without_checkpoints(run, setup_books):
    """Test that reconciling without checkpoints fails cleanly."""
    result = run("reconcile", "Main Bank")
    assert result.exit_code == 1
    assert "No checkpoints found" in result.output


def test_compensation_error_lists_cleanup(cli_runner):
    """Test the manual cleanup block for failed rollbacks."""
    import click
    from fintrack.cli.error_handling import handle_domain_error
    from fintrack.domain.errors import CompensationError

    @click.command()
    @click.pass_context
    def failing(ctx):
        handle_domain_error(
            ctx, CompensationError("rollback incomplete", failed_steps=["create drawdown record (7)"])
        )

    result = cli_runner.invoke(failing)
    assert result.exit_code == 1
    assert "Manual cleanup needed" in result.output
    assert "create drawdown record (7)" in result.output


def test_invest_contribute_withdraw_and_list(run, setup_books):
    """Test an investment round trip through the default investment account."""
    result = run("invest", "contribute", "Main Bank", "20,000,000", "--date", "2025-02-01")
    assert result.exit_code == 0, result.output
    assert "Created contribution of 20,000,000.00" in result.output
    contribution_id = extract_id(result.output)

    result = run("invest", "withdraw", str(contribution_id), "5,000,000", "--to", "Savings")
    assert result.exit_code == 0, result.output
    assert "still invested 15,000,000.00 (partial_withdrawal)" in result.output

    result = run("invest", "withdraw", str(contribution_id), "15,000,000.01", "--to", "Savings")
    assert result.exit_code == 1
    assert "exceeds invested amount" in result.output

    result = run("invest", "list", "--entity", str(setup_books["entity"]))
    assert result.exit_code == 0
    assert "partial_withdrawal" in result.output

    result = run("invest", "list", "--status", "fully_withdrawn")
    assert "No investment contributions found." in result.output


def test_second_account_resolved_within_first_accounts_entity(run, setup_books):
    """Test that an account name shared by two entities resolves to the first account's one."""
    other = extract_id(run("entity", "create", "Other Co").output)
    for entity in (setup_books["entity"], other):
        result = run("account", "create", "Brokerage", "--entity", str(entity), "--type", "investment")
        assert result.exit_code == 0, result.output

    # Ambiguous on its own
    result = run("invest", "list", "--account", "Brokerage")
    assert result.exit_code == 1

    result = run("invest", "contribute", "Main Bank", "1000", "--investment-account", "Brokerage")
    assert result.exit_code == 0, result.output
