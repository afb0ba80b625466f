import argparse
import logging
import sys
from typing import Optional

import etcdpki.sync
import etcdpki.util
import etcdpki.version
from etcdpki.kubernetes import build_reconcile_context
from etcdpki.settings import get_setting
from etcdpki.settings import populate_settings_from_config

logger = logging.getLogger(__name__)


class CLI:
    """
    :type sync: etcdpki.sync.Sync
    :param sync: A reconcile pass for the command line program to execute.
    :type prog: string
    :param prog: The name of the command line program. This will be displayed in usage and help output.
    """

    def __init__(self, sync: Optional[etcdpki.sync.Sync] = None, prog: Optional[str] = None):
        self.sync = sync if sync else etcdpki.sync.build_default_sync()
        self.prog = prog
        self.parser = self._build_parser()

    def _build_parser(self):
        """
        :rtype: argparse.ArgumentParser
        :return: The controller argument parser.
        """
        parser = argparse.ArgumentParser(
            prog=self.prog,
            description=(
                "etcdpki keeps the etcd signing authorities, CA bundles and peer, serving, metrics and client "
                "certificates of a cluster valid, rotating them ahead of expiry, and mirrors the resulting secrets "
                "and CA bundles into the namespaces that consume them. Settings are read from settings.toml and "
                "ETCDPKI_* environment variables; the flags below override them."
            ),
        )
        parser.add_argument(
            "--version",
            action="store_true",
            help="Print the version and exit.",
        )
        parser.add_argument(
            "-v",
            "--verbose",
            action="store_true",
            help="Enable verbose logging for etcdpki.",
        )
        parser.add_argument(
            "-q",
            "--quiet",
            action="store_true",
            help="Restrict etcdpki logging to warnings and errors only.",
        )
        parser.add_argument(
            "--kubeconfig",
            type=str,
            default=None,
            help=(
                "Path to a kubeconfig file. Overrides ETCDPKI_K8S__KUBECONFIG. "
                "Without one, the in-cluster service account is used."
            ),
        )
        parser.add_argument(
            "--context",
            type=str,
            default=None,
            help="The kubeconfig context to use. Defaults to the current context.",
        )
        parser.add_argument(
            "--selected-stages",
            type=str,
            default=None,
            help=(
                'Comma-separated list of reconcile stages to run, e.g. "signers,bundles". '
                f"Valid stages: {', '.join(etcdpki.sync.STAGES.keys())}. The signers stage should come "
                "first, every other stage depends on the signers it loads."
            ),
        )
        parser.add_argument(
            "--once",
            action="store_true",
            help="Run a single reconcile pass and exit instead of reconciling periodically.",
        )
        parser.add_argument(
            "--resync-interval",
            type=int,
            default=None,
            help="Seconds between reconcile passes. Overrides ETCDPKI_COMMON__RESYNC_INTERVAL.",
        )
        parser.add_argument(
            "--statsd-enabled",
            action="store_true",
            help="Send metrics to statsd.",
        )
        parser.add_argument(
            "--statsd-prefix",
            type=str,
            default="",
            help="The string to prefix statsd metrics with. Only used if --statsd-enabled is on.",
        )
        parser.add_argument(
            "--statsd-host",
            type=str,
            default="127.0.0.1",
            help="The IP address of your statsd server. Only used if --statsd-enabled is on.",
        )
        parser.add_argument(
            "--statsd-port",
            type=int,
            default=8125,
            help="The port of your statsd server. Only used if --statsd-enabled is on.",
        )
        return parser

    def main(self, argv: str) -> int:
        """
        Entrypoint for the command line interface.

        :type argv: string
        :param argv: The parameters supplied to the command line program.
        """
        config: argparse.Namespace = self.parser.parse_args(argv)
        if config.version:
            print(etcdpki.version.get_version_string())
            return etcdpki.util.STATUS_SUCCESS
        if config.verbose:
            logging.getLogger("etcdpki").setLevel(logging.DEBUG)
        elif config.quiet:
            logging.getLogger("etcdpki").setLevel(logging.WARNING)
        else:
            logging.getLogger("etcdpki").setLevel(logging.INFO)
        logger.debug("Launching etcdpki with CLI configuration: %r", vars(config))

        if config.selected_stages:
            self.sync = etcdpki.sync.build_sync(config.selected_stages)

        populate_settings_from_config(config)
        etcdpki.sync.configure_stats()

        context = build_reconcile_context()
        try:
            if config.once:
                return etcdpki.sync.run_pass(self.sync, context)
            etcdpki.sync.install_stop_event(context.stop_event)
            return etcdpki.sync.run_forever(self.sync, context, get_setting("common", "resync_interval"))
        except KeyboardInterrupt:
            return etcdpki.util.STATUS_KEYBOARD_INTERRUPT


def main(argv=None):
    """
    Entrypoint for the etcdpki controller.

    :rtype: int
    :return: The return code.
    """
    logging.basicConfig(level=logging.INFO)
    logging.getLogger("kubernetes").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    argv = argv if argv is not None else sys.argv[1:]
    sys.exit(CLI(prog="etcdpki").main(argv))
