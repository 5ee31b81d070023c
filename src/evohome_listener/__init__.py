#!/usr/bin/env python3
"""evohome_listener - a RAMSES-II zone listener & requester.

Listens to an evohome system via an HGI80-compatible bridge, maintains the state of
its zones (up to 12), and asks the controller for any missing zone metadata.
"""

from __future__ import annotations

import logging

from .address import Address, hex_id_to_dev_id, pkt_addrs  # noqa: F401
from .catalog import CommandCatalog  # noqa: F401
from .command import Command  # noqa: F401
from .dispatcher import CommandQueue, Dispatcher  # noqa: F401
from .gateway import Gateway  # noqa: F401
from .packet import PKT_LOGGER, Telegram, parse_line  # noqa: F401
from .processor import MessageProcessor  # noqa: F401
from .version import VERSION  # noqa: F401
from .zones import Zone, ZoneStore  # noqa: F401

from .const import (  # noqa: F401, isort: skip, pylint: disable=unused-import
    I_,
    RP,
    RQ,
    W_,
    CommandName,
)


_LOGGER = logging.getLogger(__name__)


class GracefulExit(SystemExit):
    code = 1
