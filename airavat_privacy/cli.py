"""
Command-Line Interface for the Airavat privacy toolkit

Builds eligibility trees and circuit witnesses from registry snapshots, and
administers the file-backed audit ledger.
"""

import json
import logging
import sys
from pathlib import Path

import click
import trio
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from airavat_privacy import __version__
from airavat_privacy.ledger import (
    AgentKey,
    AuditLedger,
    LedgerClient,
    LedgerError,
    LedgerGateway,
    load_ledger,
    save_ledger,
)
from airavat_privacy.proofs import PrivacyProtocolError
from airavat_privacy.proofs.config import HASH_ID
from airavat_privacy.proofs.eligibility import tree_for
from airavat_privacy.proofs.field import from_hex
from airavat_privacy.proofs.leaves import KIND_BUDGET, KIND_THRESHOLD, load_snapshot
from airavat_privacy.proofs.test_vectors import poseidon_vectors
from airavat_privacy.proofs.witness import (
    decode_witness,
    encode_witness,
    read_membership_inputs,
    write_circuit_inputs,
)
from airavat_privacy.settings import load_settings

KEY_ENV_VAR = "AIRAVAT_AGENT_KEY"

_HANDLED = (PrivacyProtocolError, LedgerError, ValueError, OSError)


def _fail(message: str, code: int = 1) -> None:
    click.echo(click.style(f"✗ Error: {message}", fg="red"), err=True)
    sys.exit(code)


def _settings(ctx: click.Context, **prefer):
    return load_settings(ctx.obj.get("config"), **prefer)


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", is_flag=True, help="Log tree builds and ledger calls")
@click.option(
    "--config",
    type=click.Path(dir_okay=False),
    envvar="AIRAVAT_CONFIG",
    help="YAML settings file",
)
@click.pass_context
def main(ctx, verbose, config):
    """
    Airavat privacy toolkit

    Off-circuit Merkle commitments and witnesses for the fraud, CIBIL and
    budget checker circuits, plus the role-gated agent audit ledger.
    """
    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            datefmt="[%X]",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )


# ============================================================================
# TREES
# ============================================================================


@main.group()
def tree():
    """Build trees and witnesses from registry snapshots."""


def _load_tree(ctx, snapshot_path, depth):
    settings = _settings(ctx, tree_depth=depth)
    snapshot = load_snapshot(snapshot_path, padding=settings.padding_policy)
    return tree_for(snapshot, depth=settings.tree_depth)


@tree.command("build")
@click.argument("snapshot", type=click.Path(exists=True, dir_okay=False))
@click.option("--depth", type=int, help="Tree depth (default from settings)")
@click.option("--output", type=click.Path(dir_okay=False), help="Write the commitment as JSON")
@click.pass_context
def tree_build(ctx, snapshot, depth, output):
    """
    Commit a snapshot and print its root.

    Examples:

        airavat-privacy tree build blacklist.json

        airavat-privacy tree build scores.json --depth 12 --output root.json
    """
    try:
        pipeline = _load_tree(ctx, snapshot, depth)
    except _HANDLED as exc:
        _fail(str(exc))

    commitment = {
        "kind": pipeline.snapshot.kind,
        "version": pipeline.snapshot.version,
        "records": len(pipeline.snapshot.records),
        "depth": pipeline.depth,
        "padding": pipeline.tree.padding.value,
        "hash": HASH_ID,
        "snapshotDigest": pipeline.snapshot.digest(),
        "root": pipeline.root_hex,
    }
    if output:
        Path(output).write_text(json.dumps(commitment, indent=2) + "\n", encoding="utf-8")
        click.echo(click.style(f"✓ Commitment saved to: {output}", fg="green"))
    click.echo(
        f"{commitment['kind']} v{commitment['version']}: "
        f"{commitment['records']} records, depth {commitment['depth']}"
    )
    click.echo(f"root {commitment['root']}")


def _parse_spends(text):
    try:
        return [int(part) for part in text.split(",") if part.strip()]
    except ValueError:
        raise click.BadParameter("spends must be comma-separated integers") from None


@tree.command("prove")
@click.argument("snapshot", type=click.Path(exists=True, dir_okay=False))
@click.argument("identifier")
@click.option("--threshold", type=int, help="Public threshold (threshold and budget trees)")
@click.option("--spends", help="Comma-separated spend history (budget trees)")
@click.option("--depth", type=int, help="Tree depth (default from settings)")
@click.option(
    "--output",
    type=click.Path(dir_okay=False),
    help="Write the circuit input.json here instead of stdout",
)
@click.option("--witness", type=click.Path(dir_okay=False), help="Also write the CBOR witness")
@click.pass_context
def tree_prove(ctx, snapshot, identifier, threshold, spends, depth, output, witness):
    """
    Build the circuit witness for IDENTIFIER.

    Examples:

        airavat-privacy tree prove blacklist.json user42

        airavat-privacy tree prove scores.json user42 --threshold 700

        airavat-privacy tree prove budgets.json user42 --spends 100,250 --threshold 500
    """
    try:
        pipeline = _load_tree(ctx, snapshot, depth)
        kind = pipeline.snapshot.kind
        if kind in (KIND_THRESHOLD, KIND_BUDGET) and threshold is None:
            raise click.UsageError(f"--threshold is required for {kind} trees")
        if kind == KIND_THRESHOLD:
            result = pipeline.prove_threshold(identifier, threshold)
        elif kind == KIND_BUDGET:
            if not spends:
                raise click.UsageError("--spends is required for budget trees")
            result = pipeline.prove_budget(identifier, _parse_spends(spends), threshold)
        else:
            result = pipeline.prove_membership(identifier)

        if witness:
            Path(witness).write_bytes(encode_witness(result))
        if output:
            write_circuit_inputs(result, output)
        else:
            inputs = json.dumps(result.to_circuit_inputs(), indent=2)
    except _HANDLED as exc:
        _fail(str(exc))

    if output:
        click.echo(click.style(f"✓ Circuit inputs saved to: {output}", fg="green"))
    else:
        click.echo(inputs)


@tree.command("verify")
@click.argument("witness_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["cbor", "json"], case_sensitive=False),
    default="cbor",
    help="cbor witness (any kind) or fraud-checker input.json",
)
@click.option("--root", help="Published root (0x-hex) the witness must match")
def tree_verify(witness_file, fmt, root):
    """
    Replay a witness off-circuit against its root.

    Exits 0 when the path reproduces the root, 1 otherwise.
    """
    try:
        if fmt.lower() == "json":
            result = read_membership_inputs(witness_file)
        else:
            result = decode_witness(Path(witness_file).read_bytes())
        if root is not None and from_hex(root, "root") != result.root:
            raise PrivacyProtocolError("witness was built against a different root")
        result.check()
    except (KeyError, TypeError) as exc:
        _fail(f"malformed witness: {exc}")
    except _HANDLED as exc:
        _fail(str(exc))
    click.echo(click.style(f"✓ {result.kind} witness valid (depth {result.depth})", fg="green"))


# ============================================================================
# LEDGER
# ============================================================================


@main.group()
@click.option(
    "--ledger",
    "ledger_path",
    type=click.Path(dir_okay=False),
    help="Ledger file (default from settings)",
)
@click.pass_context
def ledger(ctx, ledger_path):
    """Administer and query the audit ledger."""
    try:
        settings = _settings(ctx, ledger_path=ledger_path)
    except _HANDLED as exc:
        _fail(str(exc))
    ctx.obj["ledger_path"] = settings.ledger_path
    ctx.obj["ledger_timeout"] = settings.ledger_timeout


def _key_option(func):
    return click.option(
        "--key",
        "key_hex",
        envvar=KEY_ENV_VAR,
        required=True,
        help=f"Signing key seed as hex (or ${KEY_ENV_VAR})",
    )(func)


def _open_ledger(ctx):
    path = ctx.obj["ledger_path"]
    if not path.exists():
        _fail(f"ledger {path} does not exist; run `airavat-privacy ledger init`")
    try:
        return load_ledger(path)
    except _HANDLED as exc:
        _fail(str(exc))


def _submit(ctx, key_hex, method, *args):
    """Run one signed write through the gateway and persist the result."""
    state = _open_ledger(ctx)
    try:
        key = AgentKey.from_hex(key_hex)
        client = LedgerClient(LedgerGateway(state), key, timeout=ctx.obj["ledger_timeout"])
        result = trio.run(getattr(client, method), *args)
    except _HANDLED as exc:
        _fail(str(exc))
    save_ledger(state, ctx.obj["ledger_path"])
    return result


@ledger.command("keygen")
def ledger_keygen():
    """Generate an agent signing key."""
    key = AgentKey.generate()
    click.echo(f"seed     {key.seed_hex}")
    click.echo(f"identity {key.identity}")


@ledger.command("init")
@_key_option
@click.option("--force", is_flag=True, help="Overwrite an existing ledger file")
@click.pass_context
def ledger_init(ctx, key_hex, force):
    """Create an empty ledger controlled by --key."""
    path = ctx.obj["ledger_path"]
    if path.exists() and not force:
        _fail(f"ledger {path} already exists (use --force to overwrite)")
    try:
        controller = AgentKey.from_hex(key_hex).identity
        save_ledger(AuditLedger(controller), path)
    except _HANDLED as exc:
        _fail(str(exc))
    click.echo(click.style(f"✓ Ledger created at {path}", fg="green"))
    click.echo(f"controller {controller}")


@ledger.command("assign")
@click.argument("identity")
@click.argument("role")
@_key_option
@click.pass_context
def ledger_assign(ctx, identity, role, key_hex):
    """Give IDENTITY a ROLE (controller only)."""
    _submit(ctx, key_hex, "assign_agent", identity, role)
    click.echo(click.style(f"✓ Assigned {role.upper()} to {identity}", fg="green"))


@ledger.command("revoke")
@click.argument("identity")
@_key_option
@click.pass_context
def ledger_revoke(ctx, identity, key_hex):
    """Clear the role of IDENTITY (controller only)."""
    _submit(ctx, key_hex, "revoke_agent", identity)
    click.echo(click.style(f"✓ Revoked {identity}", fg="green"))


@ledger.command("append")
@click.argument("request_id")
@click.argument("risk_score", type=int)
@click.argument("status")
@_key_option
@click.pass_context
def ledger_append(ctx, request_id, risk_score, status, key_hex):
    """Record a decision as the agent holding --key."""
    index = _submit(ctx, key_hex, "append_log", request_id, risk_score, status)
    click.echo(click.style(f"✓ Logged {request_id} as entry {index}", fg="green"))


@ledger.command("show")
@click.argument("index", type=int, required=False)
@click.pass_context
def ledger_show(ctx, index):
    """Print one entry, or every entry when INDEX is omitted."""
    state = _open_ledger(ctx)
    if index is None:
        rows = list(state.iter_logs())
    else:
        try:
            rows = [(index, state.get_log(index))]
        except LedgerError as exc:
            _fail(str(exc))

    table = Table(title=f"Audit log ({state.get_log_count()} entries)")
    table.add_column("#", justify="right")
    table.add_column("Request")
    table.add_column("Risk", justify="right")
    table.add_column("Status")
    table.add_column("Role")
    table.add_column("Agent")
    table.add_column("Timestamp", justify="right")
    for position, entry in rows:
        table.add_row(
            str(position),
            entry.request_id,
            str(entry.risk_score),
            entry.status,
            entry.role.name,
            entry.agent[:16],
            str(entry.timestamp),
        )
    Console().print(table)


@ledger.command("count")
@click.pass_context
def ledger_count(ctx):
    """Print the number of log entries."""
    click.echo(str(_open_ledger(ctx).get_log_count()))


# ============================================================================
# MISC
# ============================================================================


@main.group()
def vectors():
    """Hash test vectors shared with the circuit owners."""


@vectors.command("check")
@click.option("--file", "vector_file", type=click.Path(exists=True, dir_okay=False))
def vectors_check(vector_file):
    """Recompute the Poseidon and identifier vectors and compare."""
    path = Path(vector_file) if vector_file else poseidon_vectors.VECTOR_FILE
    try:
        data = poseidon_vectors.load_vectors(path)
    except (OSError, ValueError) as exc:
        _fail(str(exc))
    errors = poseidon_vectors.validate_vectors(data)
    if errors:
        for error in errors:
            click.echo(click.style(f"✗ {path.name}: {error}", fg="red"), err=True)
        sys.exit(1)
    click.echo(click.style(f"✓ {path.name}: OK ({HASH_ID})", fg="green"))


@main.command()
def version():
    """Show version and hash information."""
    click.echo(f"\nAiravat privacy toolkit v{__version__}")
    click.echo(f"Hash: {HASH_ID}\n")


if __name__ == "__main__":
    main()
