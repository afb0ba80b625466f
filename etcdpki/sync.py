import logging
import signal
import threading
from collections import OrderedDict
from typing import Callable
from typing import List
from typing import Tuple

import backoff
from statsd import StatsClient

from etcdpki.context import ReconcileContext
from etcdpki.controllers import start_bundle_sync
from etcdpki.controllers import start_leaf_certificates
from etcdpki.controllers import start_resource_sync
from etcdpki.controllers import start_signer_rotation
from etcdpki.exceptions import TransientError
from etcdpki.settings import check_module_settings
from etcdpki.settings import get_setting
from etcdpki.stats import get_stats_client
from etcdpki.stats import set_stats_client
from etcdpki.util import backoff_handler
from etcdpki.util import STATUS_FAILURE
from etcdpki.util import STATUS_KEYBOARD_INTERRUPT
from etcdpki.util import STATUS_SUCCESS

logger = logging.getLogger(__name__)
stat_handler = get_stats_client(__name__)

MAX_PASS_TRIES = 5


STAGES = OrderedDict(
    {  # signers must run first, the other stages read the signers it leaves in the context
        "signers": start_signer_rotation,
        "bundles": start_bundle_sync,
        "leaf-certs": start_leaf_certificates,
        "resource-sync": start_resource_sync,
    }
)


class Sync:
    """
    A reconcile pass.

    The pass brings the stored signers, CA bundles, leaf certificates and mirrored objects in
    line with the desired state by running a sequence of named stages in order. Shutdown is
    honoured between stages; stages themselves check for it between objects.
    """

    def __init__(self):
        self._stages = OrderedDict()

    def add_stage(self, name: str, func: Callable) -> None:
        """
        Add one stage to the pass.

        :type name: string
        :param name: The name of the stage.
        :type func: Callable
        :param func: The object to call with the ReconcileContext when the stage is executed.
        """
        self._stages[name] = func

    def add_stages(self, stages: List[Tuple[str, Callable]]) -> None:
        for name, func in stages:
            self.add_stage(name, func)

    def run(self, context: ReconcileContext) -> int:
        """
        Execute all stages in sequence.

        :type context: ReconcileContext
        :param context: The collaborators and shared state of this pass.
        :return: STATUS_SUCCESS, or STATUS_FAILURE when some object could not be reconciled.
        """
        context.reset()
        logger.info("Starting reconcile pass")
        for stage_name, stage_func in self._stages.items():
            if context.stop_event.is_set():
                logger.info("Reconcile pass interrupted before stage '%s'", stage_name)
                return STATUS_KEYBOARD_INTERRUPT
            logger.info("Starting reconcile stage '%s'", stage_name)
            try:
                stage_func(context)
            except (KeyboardInterrupt, SystemExit):
                logger.warning("Reconcile pass interrupted during stage '%s'.", stage_name)
                raise
            except Exception:
                logger.exception(
                    "Unhandled exception during reconcile stage '%s'",
                    stage_name,
                )
                raise
            logger.info("Finishing reconcile stage '%s'", stage_name)
        if context.failures:
            logger.warning("Finishing reconcile pass, failed to reconcile: %s", ", ".join(context.failures))
            return STATUS_FAILURE
        logger.info("Finishing reconcile pass")
        return STATUS_SUCCESS


def run_pass(sync: Sync, context: ReconcileContext) -> int:
    """Run one pass, starting over from fresh reads while it fails transiently."""

    @backoff.on_exception(
        backoff.expo,
        TransientError,
        max_tries=MAX_PASS_TRIES,
        on_backoff=backoff_handler,
    )
    def _run() -> int:
        return sync.run(context)

    return _run()


def run_forever(sync: Sync, context: ReconcileContext, interval: float) -> int:
    """
    Run a pass every `interval` seconds until `context.stop_event` is set. A failed pass is
    logged and recorded; the next one starts on schedule.
    """
    status = STATUS_SUCCESS
    while not context.stop_event.is_set():
        try:
            status = run_pass(sync, context)
        except Exception as e:
            logger.exception("Reconcile pass failed, retrying in %s seconds", interval)
            stat_handler.incr("pass.failed")
            context.recorder.record("ReconcileFailed", f"reconcile pass failed: {e}")
            status = STATUS_FAILURE
        context.stop_event.wait(interval)
    logger.info("Stopped reconciling")
    return status


def configure_stats() -> None:
    if not get_setting("statsd", "enabled"):
        return
    if not check_module_settings("statsd", ["host", "port"]):
        return
    statsd_host = get_setting("statsd", "host")
    statsd_port = get_setting("statsd", "port")
    statsd_prefix = get_setting("statsd", "prefix")
    logger.debug(
        f"statsd enabled. Sending metrics to server {statsd_host}:{statsd_port}. "
        f'Metrics have prefix "{statsd_prefix}".',
    )
    set_stats_client(StatsClient(host=statsd_host, port=statsd_port, prefix=statsd_prefix))


def install_stop_event(stop_event: threading.Event) -> None:
    def _stop(signum, _frame):
        logger.info("Received signal %d, stopping after the current step", signum)
        stop_event.set()

    signal.signal(signal.SIGTERM, _stop)
    signal.signal(signal.SIGINT, _stop)


def build_default_sync() -> Sync:
    """
    Build the default pass, which runs every stage.

    :rtype: etcdpki.sync.Sync
    """
    sync = Sync()
    sync.add_stages([(stage_name, stage_func) for stage_name, stage_func in STAGES.items()])
    return sync


def parse_and_validate_selected_stages(selected_stages: str) -> List[str]:
    """
    Ensures that user-selected stages passed through the CLI are valid and parses them to a list of str.
    :param selected_stages: comma separated string of stage names provided by user
    :return: A validated list of stage names that we will run
    """
    validated_stages: List[str] = []
    for stage in selected_stages.split(","):
        stage = stage.strip()
        if stage in STAGES.keys():
            validated_stages.append(stage)
        else:
            valid_stages = ", ".join(STAGES.keys())
            raise ValueError(
                f'Error parsing `selected_stages`. You specified "{selected_stages}". '
                f'Example valid input looks like "signers,bundles". '
                f"Our full list of valid values is: {valid_stages}.",
            )
    return validated_stages


def build_sync(selected_stages_as_str: str) -> Sync:
    """Returns a pass running only the user-specified comma separated list of stages, in that order."""
    selected_stages = parse_and_validate_selected_stages(selected_stages_as_str)
    sync = Sync()
    sync.add_stages([(stage_name, STAGES[stage_name]) for stage_name in selected_stages])
    return sync
