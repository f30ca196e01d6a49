"""Command-line entry point: flashloan-deploy {deploy,batch,show,approve-router}."""

import argparse
import logging
import os
import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from web3 import Web3

from . import __version__
from .batch import build_plan, execute_plan, filters_from_env, make_subprocess_runner
from .chain import connect, find_artifact
from .configuration import ROUTER_ADMIN_ABI, approve_routers, router_remediation
from .contracts import PIPELINE_CONFIGS, get_pipeline_config
from .exceptions import BookkeepingError, DeploymentError
from .explorer import make_verifier
from .networks import normalize_chain_name
from .paths import get_registry_path
from .pipeline import DeploymentPipeline
from .preflight import redeploy_allowed
from .registry import RegistryStore, network_entries
from .summary import format_deployment_summary, format_next_steps

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_BOOKKEEPING = 2


def _parse_ether(value: str) -> int:
    try:
        amount = Decimal(value)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"not a decimal ether amount: {value!r}") from None
    if amount < 0:
        raise argparse.ArgumentTypeError("amount must not be negative")
    return int(Web3.to_wei(amount, "ether"))


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _store(args: argparse.Namespace) -> RegistryStore:
    return RegistryStore(get_registry_path(args.deployments_dir))


def cmd_deploy(args: argparse.Namespace) -> int:
    config = get_pipeline_config(args.contract)
    artifacts_dir = args.artifacts_dir or os.environ.get("ARTIFACTS_DIR", "artifacts")
    artifact = find_artifact(artifacts_dir, config.artifact)

    client = connect(args.network, rpc_url=args.rpc_url)
    verifier = None if args.skip_verification else make_verifier(args.network)

    pipeline = DeploymentPipeline(
        config,
        client,
        _store(args),
        args.network,
        artifact,
        verifier=verifier,
        minimum_profit=args.minimum_profit,
        routers=args.routers,
        allow_redeploy=args.allow_redeploy or redeploy_allowed(),
        confirmation=args.confirm,
    )

    try:
        result = pipeline.run()
    except BookkeepingError as e:
        if e.record is not None:
            print(format_deployment_summary(e.record))
        logger.error("%s", e)
        return EXIT_BOOKKEEPING

    print(format_deployment_summary(result.record, result.warnings))
    print(format_next_steps(config.contract_name, result.record))
    if result.needs_investigation:
        logger.warning("Deployment recorded but needs investigation")
    return EXIT_OK


def cmd_batch(args: argparse.Namespace) -> int:
    env_networks, env_contracts, env_dry_run = filters_from_env()
    networks = args.networks or env_networks
    contracts = args.contracts or env_contracts
    dry_run = args.dry_run or env_dry_run

    store = _store(args)
    plan = build_plan(store, networks=networks, contracts=contracts)
    runner = make_subprocess_runner(
        deployments_dir=store.path.parent,
        artifacts_dir=args.artifacts_dir,
        verbose=args.verbose,
    )
    report = execute_plan(plan, runner, dry_run=dry_run)
    print(report.format())
    return report.exit_code


def cmd_show(args: argparse.Namespace) -> int:
    store = _store(args)
    document = store.load()
    shown = 0
    for network, entries in network_entries(document):
        if args.network and network != normalize_chain_name(args.network):
            continue
        print(f"{network}:")
        for contract_type, entry in sorted(entries.items()):
            if isinstance(entry, dict):
                status = "verified" if entry.get("verified") else "unverified"
                print(f"  {contract_type:<28} {entry.get('contractAddress')}  ({status})")
            else:
                print(f"  {contract_type:<28} {entry}")
            shown += 1
    if not shown:
        print(f"No deployments recorded in {store.path}")
    return EXIT_OK


def cmd_approve_router(args: argparse.Namespace) -> int:
    client = connect(args.network, rpc_url=args.rpc_url)
    result = approve_routers(client, args.address, ROUTER_ADMIN_ABI, args.router)
    if result.failed:
        logger.error(router_remediation(args.network, args.address, result.failed))
        return EXIT_FAILED
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="flashloan-deploy", description="Deploy and track flash loan arbitrage contracts"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument(
        "--deployments-dir", type=Path, default=None, help="Registry directory (default ./deployments)"
    )
    sub = parser.add_subparsers(dest="cmd")

    p_deploy = sub.add_parser("deploy", help="Deploy one contract type to one network")
    p_deploy.add_argument("contract", choices=sorted(PIPELINE_CONFIGS))
    p_deploy.add_argument("--network", required=True)
    p_deploy.add_argument("--rpc-url", default=None)
    p_deploy.add_argument("--artifacts-dir", type=Path, default=None)
    p_deploy.add_argument(
        "--minimum-profit", type=_parse_ether, default=None, help="Threshold in ether (0 allowed on testnets)"
    )
    p_deploy.add_argument("--routers", type=_split_csv, default=None, help="Comma-separated router addresses")
    p_deploy.add_argument("--allow-redeploy", action="store_true")
    p_deploy.add_argument("--skip-verification", action="store_true")
    p_deploy.add_argument("--confirm", default=None, help="Mainnet confirmation token")
    p_deploy.set_defaults(func=cmd_deploy)

    p_batch = sub.add_parser("batch", help="Deploy every missing pair of the manifest")
    p_batch.add_argument("--networks", type=_split_csv, default=None)
    p_batch.add_argument("--contracts", type=_split_csv, default=None)
    p_batch.add_argument("--dry-run", action="store_true")
    p_batch.add_argument("--artifacts-dir", type=Path, default=None)
    p_batch.set_defaults(func=cmd_batch)

    p_show = sub.add_parser("show", help="List recorded deployments")
    p_show.add_argument("--network", default=None)
    p_show.set_defaults(func=cmd_show)

    p_approve = sub.add_parser("approve-router", help="Approve DEX routers on a deployed contract")
    p_approve.add_argument("--network", required=True)
    p_approve.add_argument("--address", required=True)
    p_approve.add_argument("--router", action="append", required=True)
    p_approve.add_argument("--rpc-url", default=None)
    p_approve.set_defaults(func=cmd_approve_router)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv(".env.local")
    load_dotenv()

    parser = build_parser()
    args = parser.parse_args(argv)

    level = "DEBUG" if args.verbose else os.environ.get("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)

    if not hasattr(args, "func"):
        parser.print_help()
        return EXIT_FAILED

    try:
        return int(args.func(args))
    except BookkeepingError as e:
        logger.error("%s", e)
        return EXIT_BOOKKEEPING
    except DeploymentError as e:
        logger.error("%s failed: %s", args.cmd, e)
        return EXIT_FAILED
    except KeyboardInterrupt:
        logger.error("Interrupted")
        return EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
