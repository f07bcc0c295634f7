from argparse import ArgumentParser
import sys

from xctargets.details.errors import ConfigurationError
from xctargets.details.run_context import RunContext, setup_logging
from xctargets.details.tools.generate import generate_main
from xctargets.details.tools.validate import validate_main
from xctargets.details.workspace import Workspace


def main(argv=None):
    COMMANDS = {
        "generate": generate_main,
        "validate": validate_main,
    }
    # parse common arguments...
    parser = ArgumentParser(prog="xctargets")
    parser.add_argument("command", choices=COMMANDS.keys())
    parser.add_argument("--config", type=str, required=True)
    parser.add_argument("--debug", action="store_true")
    parser.add_argument("--no-color", action="store_true")
    parser.add_argument("--clean", action="store_true")
    parser.add_argument("targets", default=[], nargs="*")
    # targets may follow the options, e.g. `generate --config default Share`
    args = parser.parse_intermixed_args(argv)
    setup_logging(debug=args.debug, use_color=not args.no_color)
    run = RunContext(debug=args.debug, use_color=not args.no_color)
    try:
        # build workspace for target(s)...
        workspace = Workspace()
        if args.config not in workspace.configs:
            raise ConfigurationError(
                f"unknown config '{args.config}', expected one of: "
                f"{', '.join(sorted(workspace.configs))}",
                fatal_for_run=True,
            )
        config = workspace.configs[args.config]
        config.debug = config.debug or args.debug
        config.clean = config.clean or args.clean
        workspace.configure(config=config, filter_target_names=args.targets, run=run)
        exit_code = COMMANDS[args.command](
            workspace=workspace,
            config=config,
            run=run,
            top_level_targets=args.targets,
        )
    except ConfigurationError as e:
        run.error("%s", e)
        exit_code = 1
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
