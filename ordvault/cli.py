#!/usr/bin/env python3
"""
Ordinals Vault CLI

Oracle and operator tooling for the burn-to-mint bridge.

Usage:
    ordvault <command> [subcommand] [options]

Commands:
    keygen          Generate an ML-DSA-44 oracle keypair
    fingerprint     Oracle public key fingerprint for deployment / rotation
    collection-id   Collection binding value for a slug
    attest          Sign a burn attestation (oracle side)
    verify          Check an attestation offline against a vault address
    fetch           Fetch an attestation from the oracle
    config          Configuration management

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from enum import Enum
from pathlib import Path
from typing import Any, List, Optional

import yaml

from ordvault import __version__
from ordvault.attestation import MLDSA44, Attestation, OracleSigner, attestation_digest
from ordvault.config import ConfigError, get_config_manager
from ordvault.hardening import CryptoUtils, VaultError, Validators, u256_hex
from ordvault.hashing import collection_id_from_slug, oracle_key_hash
from ordvault.observability import VaultLayer, configure_logging, get_logger
from ordvault.oracle_client import OracleClient, OracleClientError

logger = get_logger("cli", VaultLayer.CLI)

PUBLIC_KEY_FILE = "oracle.pk"
SECRET_KEY_FILE = "oracle.sk"


class OutputFormat(Enum):
    """Output format options."""
    JSON = "json"
    YAML = "yaml"
    TEXT = "text"


class CLIError(Exception):
    """CLI error with exit code."""
    def __init__(self, message: str, exit_code: int = 1):
        super().__init__(message)
        self.exit_code = exit_code


def format_output(data: Any, fmt: OutputFormat = OutputFormat.JSON) -> str:
    """Format data for output."""
    if fmt == OutputFormat.JSON:
        return json.dumps(data, indent=2, default=str)
    elif fmt == OutputFormat.YAML:
        return yaml.safe_dump(data, default_flow_style=False, sort_keys=False)
    elif isinstance(data, dict):
        return "\n".join(f"{k}: {v}" for k, v in data.items())
    return str(data)


def read_hex_file(path: str, what: str) -> bytes:
    """Read a key or signature stored as hex text."""
    p = Path(path)
    if not p.exists():
        raise CLIError(f"{what} file not found: {path}")
    try:
        return Validators.validate_bytes(p.read_text().strip(), what)
    except VaultError as e:
        raise CLIError(f"{what} file is not valid hex: {path}") from e


def read_json_file(path: str) -> Any:
    p = Path(path)
    if not p.exists():
        raise CLIError(f"File not found: {path}")
    try:
        return json.loads(p.read_text())
    except ValueError as e:
        raise CLIError(f"Invalid JSON in {path}: {e}") from e


class VaultCLI:
    """Main CLI application."""

    def __init__(self):
        self.parser = argparse.ArgumentParser(
            prog="ordvault",
            description="Ordinals Vault burn-to-mint bridge tooling",
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        self.parser.add_argument(
            "--version", "-V",
            action="version",
            version=f"ordvault {__version__}",
        )
        self.parser.add_argument(
            "--format", "-f",
            choices=[f.value for f in OutputFormat],
            default="json",
            help="Output format (default: json)",
        )
        self.parser.add_argument(
            "--config", "-c",
            help="Configuration file (YAML)",
        )
        self.parser.add_argument(
            "--quiet", "-q",
            action="store_true",
            help="Suppress non-essential output",
        )

        self.subparsers = self.parser.add_subparsers(dest="command", help="Commands")
        self._register_commands()

    def _register_commands(self) -> None:
        """Register all command groups."""
        self._register_key_commands()
        self._register_attestation_commands()
        self._register_config_commands()

    def _register_key_commands(self) -> None:
        """Register key and fingerprint commands."""
        keygen = self.subparsers.add_parser("keygen", help="Generate an oracle keypair")
        keygen.add_argument("--out-dir", "-o", required=True, help="Directory for oracle.pk / oracle.sk")
        keygen.add_argument("--force", action="store_true", help="Overwrite existing key files")

        fingerprint = self.subparsers.add_parser("fingerprint", help="Oracle key fingerprint")
        fingerprint.add_argument("--public-key", "-p", required=True, help="Public key file (hex)")

        collection = self.subparsers.add_parser("collection-id", help="Collection binding for a slug")
        collection.add_argument("slug", help="Collection slug")

    def _register_attestation_commands(self) -> None:
        """Register attestation subcommands."""
        # attest
        attest = self.subparsers.add_parser("attest", help="Sign a burn attestation")
        attest.add_argument("--key-dir", "-k", required=True, help="Directory holding oracle.pk / oracle.sk")
        attest.add_argument("--contract", required=True, help="Vault address (32-byte hex)")
        attest.add_argument("--inscription", "-i", required=True, help="Burned inscription id")
        attest.add_argument("--burner", "-b", required=True, help="Claimant address (32-byte hex)")
        attest.add_argument("--deadline", "-d", type=int, required=True, help="Last valid block height")
        attest.add_argument("--nonce", help="Nonce (hex or decimal, random if omitted)")
        attest.add_argument("--collection-id", default="0", help="Collection binding (hex or decimal)")
        attest.add_argument("--output", "-o", help="Write the wire record to a file")

        # verify
        verify = self.subparsers.add_parser("verify", help="Check an attestation offline")
        verify.add_argument("--attestation", "-a", required=True, help="Wire record (JSON file)")
        verify.add_argument("--contract", required=True, help="Vault address (32-byte hex)")
        verify.add_argument("--oracle-key-hash", required=True, help="Trusted oracle fingerprint")

        # fetch
        fetch = self.subparsers.add_parser("fetch", help="Fetch an attestation from the oracle")
        fetch.add_argument("--txid", "-t", required=True, help="Bitcoin burn transaction id")
        fetch.add_argument("--endpoint", "-e", help="Oracle base URL (default from config)")
        fetch.add_argument("--output", "-o", help="Write the wire record to a file")

    def _register_config_commands(self) -> None:
        """Register config subcommands."""
        config = self.subparsers.add_parser("config", help="Configuration management")
        config_sub = config.add_subparsers(dest="subcommand")

        # config get
        get = config_sub.add_parser("get", help="Get configuration value")
        get.add_argument("path", help="Config path (e.g., deployment.max_supply)")

        # config show
        config_sub.add_parser("show", help="Show all configuration")

        # config validate
        config_sub.add_parser("validate", help="Validate configuration")

        # config schema
        config_sub.add_parser("schema", help="Export configuration schema")

    def run(self, args: Optional[List[str]] = None) -> int:
        """Run the CLI."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 0

        try:
            self._load_config(parsed)
            fmt = OutputFormat(parsed.format)
            result = self._dispatch(parsed)

            if result is not None:
                print(format_output(result, fmt))

            return 0

        except CLIError as e:
            if not parsed.quiet:
                print(f"Error: {e}", file=sys.stderr)
            return e.exit_code

        except (ConfigError, VaultError) as e:
            if not parsed.quiet:
                print(f"Error: {e}", file=sys.stderr)
            return 1

    def _load_config(self, args: argparse.Namespace) -> None:
        mgr = get_config_manager()
        if args.config:
            mgr.load_from_file(args.config)
        else:
            mgr.load_defaults()
        try:
            configure_logging(
                level=mgr.get("observability.log_level"),
                fmt=mgr.get("observability.log_format"),
            )
        except ValueError as e:
            raise ConfigError(str(e)) from e

    def _dispatch(self, args: argparse.Namespace) -> Any:
        """Dispatch command to handler."""
        cmd = args.command.replace("-", "_")
        subcmd = getattr(args, "subcommand", None)

        handler_name = f"_handle_{cmd}_{subcmd}" if subcmd else f"_handle_{cmd}"
        handler = getattr(self, handler_name, None)

        if handler is None:
            raise CLIError(f"Unknown command: {args.command} {subcmd or ''}")

        return handler(args)

    # Key handlers
    def _handle_keygen(self, args: argparse.Namespace) -> Any:
        out_dir = Path(args.out_dir)
        pk_path = out_dir / PUBLIC_KEY_FILE
        sk_path = out_dir / SECRET_KEY_FILE
        if not args.force and (pk_path.exists() or sk_path.exists()):
            raise CLIError(f"Key files already exist in {out_dir} (use --force)")

        out_dir.mkdir(parents=True, exist_ok=True)
        signer = OracleSigner.generate()
        pk_path.write_text(signer.public_key.hex() + "\n")
        fd = os.open(sk_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as f:
            f.write(signer.secret_key.hex() + "\n")

        logger.info("Oracle keypair generated", operation="keygen", out_dir=str(out_dir))
        return {
            "algorithm": MLDSA44.NAME,
            "public_key": str(pk_path),
            "secret_key": str(sk_path),
            "oracle_key_hash": u256_hex(signer.key_hash),
        }

    def _handle_fingerprint(self, args: argparse.Namespace) -> Any:
        public_key = read_hex_file(args.public_key, "public key")
        if len(public_key) != MLDSA44.PUBLIC_KEY_SIZE:
            raise CLIError(
                f"public key is {len(public_key)} bytes, expected {MLDSA44.PUBLIC_KEY_SIZE}"
            )
        return {"oracle_key_hash": u256_hex(oracle_key_hash(public_key))}

    def _handle_collection_id(self, args: argparse.Namespace) -> Any:
        return {"slug": args.slug, "collection_id_hash": u256_hex(collection_id_from_slug(args.slug))}

    # Attestation handlers
    def _handle_attest(self, args: argparse.Namespace) -> Any:
        key_dir = Path(args.key_dir)
        signer = OracleSigner(
            read_hex_file(str(key_dir / PUBLIC_KEY_FILE), "public key"),
            read_hex_file(str(key_dir / SECRET_KEY_FILE), "secret key"),
        )
        nonce = Validators.parse_u256(args.nonce, "nonce") if args.nonce else None
        attestation = signer.attest(
            contract_address=Validators.validate_address(args.contract, "contract"),
            claim_id=args.inscription,
            claimant=Validators.validate_address(args.burner, "burner"),
            deadline=args.deadline,
            nonce=nonce,
            collection_id=Validators.parse_u256(args.collection_id, "collection_id"),
        )
        record = attestation.to_wire()
        if args.output:
            Path(args.output).write_text(json.dumps(record, indent=2) + "\n")
        return record

    def _handle_verify(self, args: argparse.Namespace) -> Any:
        attestation = Attestation.from_wire(read_json_file(args.attestation))
        contract = Validators.validate_address(args.contract, "contract")
        trusted = Validators.parse_u256(args.oracle_key_hash, "oracle_key_hash")

        digest = attestation_digest(
            contract,
            attestation.claim_id,
            attestation.claimant,
            attestation.deadline,
            attestation.nonce,
            attestation.collection_id,
        )
        key_trusted = CryptoUtils.secure_compare_u256(
            oracle_key_hash(attestation.oracle_public_key), trusted,
        )
        signature_valid = key_trusted and MLDSA44.verify(
            attestation.oracle_public_key, digest, attestation.oracle_signature,
        )
        return {
            "valid": signature_valid,
            "key_trusted": key_trusted,
            "inscription_id": attestation.claim_id,
            "deadline": attestation.deadline,
            "digest": "0x" + digest.hex(),
        }

    def _handle_fetch(self, args: argparse.Namespace) -> Any:
        mgr = get_config_manager()
        client = OracleClient(
            args.endpoint or mgr.get("oracle.endpoint"),
            timeout=mgr.get("oracle.timeout_seconds"),
        )
        try:
            record = client.fetch_attestation(args.txid).to_wire()
        except OracleClientError as e:
            raise CLIError(str(e), exit_code=2) from e
        if args.output:
            Path(args.output).write_text(json.dumps(record, indent=2) + "\n")
        return record

    # Config handlers
    def _handle_config_get(self, args: argparse.Namespace) -> Any:
        mgr = get_config_manager()
        return {"path": args.path, "value": mgr.get(args.path)}

    def _handle_config_show(self, args: argparse.Namespace) -> Any:
        mgr = get_config_manager()
        return mgr.config.to_dict()

    def _handle_config_validate(self, args: argparse.Namespace) -> Any:
        mgr = get_config_manager()
        errors = mgr.validate()
        if errors:
            raise CLIError("Invalid configuration:\n  " + "\n  ".join(errors))
        return {"valid": True, "errors": []}

    def _handle_config_schema(self, args: argparse.Namespace) -> Any:
        mgr = get_config_manager()
        return mgr.export_schema()


def main() -> int:
    """CLI entry point."""
    cli = VaultCLI()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
