#!/usr/bin/env python3
"""A CLI for the evohome_listener library."""

from __future__ import annotations

import asyncio
import json
import logging
import signal
import sys
from datetime import datetime as dt
from typing import Any, Final

import click
import voluptuous as vol
from colorama import Fore, Style, init as colorama_init

from evohome_listener import Gateway, GracefulExit, Telegram, exceptions as exc
from evohome_listener.address import Address
from evohome_listener.const import (
    CTL_DEVICE_TYPE,
    DEFAULT_SERIAL_PORT,
    HGI_DEVICE_TYPE,
    CommandName,
)
from evohome_listener.logger import CONSOLE_COLS, DEFAULT_DATEFMT, DEFAULT_FMT
from evohome_listener.schemas import (
    SCH_CONFIG,
    SZ_SERIAL_PORT,
    extract_serial_port,
)

from evohome_listener.const import (  # noqa: F401, isort: skip, pylint: disable=unused-import
    I_,
    RP,
    RQ,
    W_,
)


SZ_INPUT_FILE: Final = "input_file"
SZ_LISTEN_ONLY: Final = "listen_only"

SHOW_STATUS = False

# this is called after import colorlog to ensure its handlers wrap the correct streams
logging.basicConfig(level=logging.WARNING, format=DEFAULT_FMT, datefmt=DEFAULT_DATEFMT)


LISTEN: Final = "listen"
PARSE: Final = "parse"


COLORS = {
    I_: Fore.GREEN,
    RP: Fore.CYAN,
    RQ: Fore.CYAN,
    W_: Style.BRIGHT + Fore.MAGENTA,
}

ARRAY_BLOCK_LENGTHS = {  # a telegram longer than one block is an array
    CommandName.ZONE_INFO: 6,
    CommandName.SETPOINT: 3,
    CommandName.ZONE_TEMPERATURE: 3,
}

CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])

LIB_KEYS = tuple(SCH_CONFIG({}).keys()) + (SZ_SERIAL_PORT,)


def normalise_config(lib_config: dict) -> tuple[str, dict, dict]:
    """Validate a config dict, and extract the serial port from it."""

    lib_config = SCH_CONFIG(lib_config)  # may raise vol.Invalid

    if ser_port := lib_config.pop(SZ_SERIAL_PORT, None):
        port_name, port_config = extract_serial_port(ser_port)
    else:
        port_name, port_config = DEFAULT_SERIAL_PORT, {}

    return port_name, port_config, lib_config  # type: ignore[return-value]


def split_kwargs(obj: tuple[dict, dict], kwargs: dict) -> tuple[dict, dict]:
    """Split kwargs into cli/library kwargs (any unset library kwargs are dropped)."""
    cli_kwargs, lib_kwargs = obj

    cli_kwargs.update({k: v for k, v in kwargs.items() if k not in LIB_KEYS})
    lib_kwargs.update(
        {k: v for k, v in kwargs.items() if k in LIB_KEYS and v is not None}
    )

    return cli_kwargs, lib_kwargs


class DeviceIdParamType(click.ParamType):
    name = "device_id"

    def convert(self, value: str, param, ctx):
        if Address.is_valid(value) and value[:2] == CTL_DEVICE_TYPE:
            return value
        self.fail(f"{value!r} is not a valid controller id", param, ctx)


# Args/Params for both RF and file
@click.group(context_settings=CONTEXT_SETTINGS)
@click.option("-z", "--debug-mode", count=True, help="-z for info, -zz for debug")
@click.option("-c", "--config-file", type=click.File("r"), help="a JSON config file")
@click.option(
    "-i", "--controller-id", type=DeviceIdParamType(), envvar="EVOHOME_ID"
)
@click.option("-s", "--state-file", type=click.Path(), envvar="STATE_FILE_PATH")
@click.option("-m", "--measurement-log", type=click.Path(), help="JSON lines file")
@click.option("-u", "--summary-log", type=click.Path(), help="JSON lines file")
@click.option("-l", "--long-format", is_flag=True, help="dont truncate STDOUT")
@click.option(  # show_status
    "-S/-nS",
    "--show-status/--no-show-status",
    default=SHOW_STATUS,
    help="display zone state when stopped",
)
@click.pass_context
def cli(ctx, config_file=None, debug_mode: int = 0, **kwargs: Any) -> None:
    """A CLI for the evohome_listener library."""

    if debug_mode:  # Do first
        logging.getLogger().setLevel(logging.DEBUG if debug_mode > 1 else logging.INFO)

    kwargs, lib_kwargs = split_kwargs(({}, {}), kwargs)

    if config_file:
        lib_kwargs = json.load(config_file) | lib_kwargs  # CLI takes precedence

    ctx.obj = kwargs, lib_kwargs


# Args/Params for packet log only
class FileCommand(click.Command):  # client.py parse <file>
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.params.insert(  # input_file
            0, click.Argument(("input-file",), type=click.File("r"), default=sys.stdin)
        )


# Args/Params for RF packets only
class PortCommand(click.Command):  # client.py <command> <port> --packet-log xxx
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.params.insert(  # serial_port
            0, click.Argument(("serial-port",), required=False, envvar="HGI_DEVICE_PATH")
        )
        self.params.insert(  # --packet-log
            1,
            click.Option(
                ("-o", "--packet-log"),
                type=click.Path(),
                help="Log all packets to this file",
            ),
        )


#
# 1/2: PARSE (a file, no sending)
@click.command(cls=FileCommand)  # parse a packet log, then stop
@click.pass_obj
def parse(obj, **kwargs: Any):
    """Parse a log file for telegrams."""
    config, lib_config = split_kwargs(obj, kwargs)

    return PARSE, lib_config, config


#
# 2/2: LISTEN (to RF, and request any missing zone metadata)
@click.command(cls=PortCommand)
@click.option("-L", "--listen-only", is_flag=True, help="disable sending")
@click.pass_obj
def listen(obj, **kwargs: Any):
    """Listen to a serial port for telegrams, and query the controller."""
    config, lib_config = split_kwargs(obj, kwargs)

    if config[SZ_LISTEN_ONLY]:
        print(" - sending is force-disabled")

    return LISTEN, lib_config, config


def print_summary(gwy: Gateway, **kwargs: Any) -> None:
    if not kwargs.get("show_status"):
        return

    status = gwy.status
    print(f"Status[{gwy.controller_id}] = {json.dumps(status, indent=4)}\r\n")

    print(f"{'idx':>3}  {'name':<20} {'temp':>6} {'setpt':>6} {'demand':>6}")
    for zone in gwy.store.snapshot():
        print(
            f"{zone.idx:>3}  {zone.name or '':<20} {zone.temperature!s:>6}"
            f" {zone.setpoint!s:>6} {zone.heat_demand!s:>6}"
        )


def _setup_signal_handlers(gwy: Gateway) -> None:
    """Cancel the main task on SIGINT/SIGTERM, and log the state on SIGUSR1."""

    if sys.platform == "win32":  # signals are POSIX only
        return

    loop = asyncio.get_running_loop()
    main_task = asyncio.current_task()
    assert main_task is not None  # mypy

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, main_task.cancel)

    loop.add_signal_handler(
        signal.SIGUSR1,
        lambda: logging.getLogger(__name__).warning(
            "Status: %s", json.dumps(gwy.status)
        ),
    )


async def async_main(command: str, lib_kwargs: dict, **kwargs: Any) -> None:
    """Do certain things."""

    def handle_msg(tgm: Telegram) -> None:
        """Process the telegram as it arrives (a callback).

        In this case, the telegram is merely printed.
        """

        if kwargs["long_format"]:
            print(f'{dt.now().isoformat(timespec="microseconds")} ... {tgm!r}  # {tgm}')
            return

        dtm = f"{dt.now():%H:%M:%S.%f}"[:-3]
        con_cols = CONSOLE_COLS
        color = COLORS.get(f"{tgm.verb:>2}", "")

        if tgm.src.type == HGI_DEVICE_TYPE:
            print(f"{Style.BRIGHT}{color}{dtm} {tgm}"[:con_cols])
        elif tgm.length > ARRAY_BLOCK_LENGTHS.get(tgm.name, tgm.length):
            print(f"{Fore.YELLOW}{dtm} {tgm}"[:con_cols])
        else:
            print(f"{color}{dtm} {tgm}"[:con_cols])

    serial_port, port_config, lib_kwargs = normalise_config(lib_kwargs)

    if command == PARSE:
        gwy = Gateway(None, input_file=kwargs[SZ_INPUT_FILE], **lib_kwargs)
    else:
        gwy = Gateway(
            serial_port,
            port_config=port_config,  # type: ignore[arg-type]
            disable_sending=kwargs.get(SZ_LISTEN_ONLY),
            **lib_kwargs,
        )

    colorama_init(autoreset=True)
    gwy.add_msg_handler(handle_msg)

    _setup_signal_handlers(gwy)

    print("\r\nclient.py: Starting engine...")

    try:  # main code here
        await gwy.start()

        if command == LISTEN:
            await gwy.wait_closed()

    except asyncio.CancelledError:
        msg = "ended via: CancelledError (e.g. SIGINT)"
    except GracefulExit:
        msg = "ended via: GracefulExit"
    except exc.EvohomeException as err:
        msg = f"ended via: EvohomeException: {err}"
    else:  # if no Exceptions raised, e.g. EOF when parsing
        msg = "ended without error (e.g. EOF)"
    finally:
        await gwy.stop()

    print(f"\r\nclient.py: Engine stopped: {msg}")

    print_summary(gwy, **kwargs)


cli.add_command(parse)
cli.add_command(listen)


def main() -> None:
    print("\r\nclient.py: Starting evohome_listener...")

    try:
        result = cli(standalone_mode=False)
    except click.ClickException as err:
        print(f"Error: {err.format_message()}")
        sys.exit(-1)

    if isinstance(result, int):
        sys.exit(result)

    (command, lib_kwargs, kwargs) = result

    try:
        normalise_config(dict(lib_kwargs))
    except vol.Invalid as err:
        print(f"Error: invalid config: {err}")
        sys.exit(-1)

    try:
        asyncio.run(async_main(command, lib_kwargs, **kwargs))
    except KeyboardInterrupt:
        print("\r\nclient.py: Engine stopped: ended via: KeyboardInterrupt")

    print(" - finished evohome_listener.\r\n")


if __name__ == "__main__":
    main()
