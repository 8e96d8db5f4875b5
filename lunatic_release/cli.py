from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

from dotenv import load_dotenv

from .bundle.builder import PackageBuilder, PackageConfig
from .config import ConfigError, PipelineConfig, load_config
from .errors import PipelineError
from .outputs import write_github_output
from .pipeline import run_platform
from .plan import ReleasePlan, build_plan
from .platforms import detect_host_platform, get_platform, list_platforms
from .process import CommandRunner
from .publish import PublishContext, publish_asset
from .schemas.release import PlatformProfile, TriggerContext
from .secrets import describe_secret, list_secrets, use_dotenv
from .verify import run_verification
from .workflow import dump_workflow, render_workflow

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


def _load_local_env(workspace: Path) -> None:
    env_file = workspace / ".env"
    use_dotenv(env_file)
    if env_file.exists():
        load_dotenv(env_file, override=False)


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", help="YAML configuration file.")
    parser.add_argument("--workspace-root")
    parser.add_argument("--output-dir")
    parser.add_argument("--store", help="Release store: github, local or noop.")
    parser.add_argument("--store-arg", action="append", help="Store option key=value (repeatable).")
    parser.add_argument("--github-repo")
    parser.add_argument("--dry-run", action=argparse.BooleanOptionalAction, default=None)


def _add_trigger_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--ref", help="Git ref; defaults to $GITHUB_REF.")
    parser.add_argument("--event", choices=["push", "pull_request"], help="Defaults to $GITHUB_EVENT_NAME.")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="lunatic-release", description="Multi-platform verify and release pipeline.")
    parser.add_argument("-v", "--verbose", action="store_true")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("platforms", help="List the platform matrix.")

    plan = subparsers.add_parser("plan", help="Show the pipeline plan for a ref.")
    _add_trigger_arguments(plan)

    verify = subparsers.add_parser("verify", help="Run tests, lint and format checks (fail-fast).")
    _add_common_arguments(verify)

    package = subparsers.add_parser("package", help="Build and archive the release binary for a tagged ref.")
    _add_common_arguments(package)
    _add_trigger_arguments(package)
    package.add_argument("--platform")
    package.add_argument("--skip-build", action="store_true")

    publish = subparsers.add_parser("publish", help="Attach an archive to the draft release for a tagged ref.")
    _add_common_arguments(publish)
    _add_trigger_arguments(publish)
    publish.add_argument("--platform")
    publish.add_argument("--archive", help="Archive path; defaults to <output-dir>/<asset name>.")

    run = subparsers.add_parser("run", help="Run the full pipeline for one platform.")
    _add_common_arguments(run)
    _add_trigger_arguments(run)
    run.add_argument("--platform")

    workflow = subparsers.add_parser("workflow", help="GitHub Actions workflow helpers.")
    workflow_sub = workflow.add_subparsers(dest="workflow_command", required=True)
    render = workflow_sub.add_parser("render", help="Render the CI workflow YAML.")
    render.add_argument("--output")
    render.add_argument("--python-version", default="3.11")
    render.add_argument("--install-spec", default="lunatic-release")

    secrets = subparsers.add_parser("secrets", help="Secret resolution diagnostics.")
    secrets_sub = secrets.add_subparsers(dest="secrets_command", required=True)
    describe = secrets_sub.add_parser("describe", help="Describe how secrets resolve.")
    describe.add_argument("--name", action="append")

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        if args.command == "platforms":
            _print_json([profile.model_dump(mode="json") for profile in list_platforms()])
            return EXIT_OK
        if args.command == "plan":
            trigger = _resolve_trigger(args)
            _print_json({"trigger": trigger.model_dump(mode="json"), "plan": build_plan(trigger).to_dict()})
            return EXIT_OK
        if args.command == "workflow" and args.workflow_command == "render":
            return _handle_workflow_render(args)
        if args.command == "secrets" and args.secrets_command == "describe":
            _load_local_env(Path.cwd())
            names = args.name or [spec.name for spec in list_secrets()]
            _print_json([describe_secret(name) for name in names])
            return EXIT_OK

        config = _resolve_config(args)
        _load_local_env(config.workspace)
        if args.command == "verify":
            return _handle_verify(config)
        if args.command == "package":
            return _handle_package(args, config)
        if args.command == "publish":
            return _handle_publish(args, config)
        if args.command == "run":
            return _handle_run(args, config)
    except (ConfigError, KeyError, ValueError) as exc:
        _print_json({"status": "error", "error": str(exc)})
        return EXIT_USAGE
    except PipelineError as exc:
        _print_json({"status": "failed", "error": exc.to_dict()})
        return EXIT_FAILED

    parser.error(f"Unknown command '{args.command}'")
    return EXIT_USAGE


def _handle_verify(config: PipelineConfig) -> int:
    result = run_verification(config.workspace, runner=CommandRunner())
    _print_json({"status": "ok", **result.to_dict()})
    return EXIT_OK


def _handle_package(args: argparse.Namespace, config: PipelineConfig) -> int:
    plan = build_plan(_resolve_trigger(args))
    if not isinstance(plan, ReleasePlan):
        _print_json({"status": "skipped", "plan": plan.to_dict()})
        return EXIT_OK
    profile = _resolve_platform(args.platform)
    result = PackageBuilder(runner=CommandRunner()).build(
        PackageConfig(
            profile=profile,
            workspace=config.workspace,
            output_dir=config.output_path,
            aux_files=config.aux_files,
            skip_build=args.skip_build,
        )
    )
    write_github_output({"asset_path": result.archive_path, "tag_name": plan.tag_name})
    _print_json({"status": "ok", **result.to_dict()})
    return EXIT_OK


def _handle_publish(args: argparse.Namespace, config: PipelineConfig) -> int:
    plan = build_plan(_resolve_trigger(args))
    if not isinstance(plan, ReleasePlan):
        _print_json({"status": "skipped", "plan": plan.to_dict()})
        return EXIT_OK
    profile = _resolve_platform(args.platform)
    archive = config.resolve(args.archive) if args.archive else config.output_path / profile.asset_name
    context = PublishContext(
        tag_name=plan.tag_name,
        release_name=plan.release_name,
        archive_path=archive,
        content_type=profile.archive_content_type,
        store_name=config.store,
        store_options=dict(config.store_options),
        github_repo=config.github_repo,
        token_env=config.token_env,
        github_api=config.github_api,
        dry_run=config.dry_run,
    )
    result = publish_asset(context)
    write_github_output({"release_name": result.release_name, "tag_name": result.tag_name})
    _print_json({"status": result.upload.status, **result.to_dict()})
    return EXIT_OK


def _handle_run(args: argparse.Namespace, config: PipelineConfig) -> int:
    trigger = _resolve_trigger(args)
    profile = _resolve_platform(args.platform)
    result = run_platform(profile, trigger, config)
    outputs: Dict[str, object] = {"status": result.status}
    if isinstance(result.plan, ReleasePlan):
        outputs.update(release_name=result.plan.release_name, tag_name=result.plan.tag_name)
    if result.archive_path:
        outputs["asset_path"] = result.archive_path
    write_github_output(outputs)
    _print_json(result.to_dict())
    return EXIT_OK if result.ok else EXIT_FAILED


def _handle_workflow_render(args: argparse.Namespace) -> int:
    workflow = render_workflow(list_platforms(), python_version=args.python_version, install_spec=args.install_spec)
    output = Path(args.output) if args.output else None
    text = dump_workflow(workflow, output)
    if output is None:
        sys.stdout.write(text)
    else:
        _print_json({"status": "ok", "path": str(output)})
    return EXIT_OK


def _resolve_config(args: argparse.Namespace) -> PipelineConfig:
    overrides: Dict[str, object] = {
        "workspace_root": args.workspace_root,
        "output_dir": args.output_dir,
        "store": args.store,
        "github_repo": args.github_repo or os.environ.get("GITHUB_REPOSITORY") or None,
        "dry_run": args.dry_run,
    }
    if args.store_arg:
        overrides["store_options"] = _parse_key_value_args(args.store_arg)
    return load_config(args.config, overrides=overrides)


def _resolve_trigger(args: argparse.Namespace) -> TriggerContext:
    trigger = TriggerContext.from_env(os.environ)
    if args.ref is None and args.event is None:
        return trigger
    return TriggerContext.from_ref(
        args.ref if args.ref is not None else trigger.ref,
        args.event or trigger.event_kind,
    )


def _resolve_platform(value: Optional[str]) -> PlatformProfile:
    return get_platform(value) if value else detect_host_platform()


def _parse_key_value_args(values: List[str]) -> Dict[str, str]:
    options: Dict[str, str] = {}
    for entry in values:
        if "=" not in entry:
            raise ValueError(f"Argument must be key=value (got '{entry}')")
        key, raw_value = entry.split("=", 1)
        options[key.strip()] = raw_value.strip()
    return options


def _print_json(payload: Mapping[str, object] | List[object]) -> None:
    print(json.dumps(payload, indent=2, default=str))


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
