from unittest.mock import MagicMock
from unittest.mock import patch

import pytest

import etcdpki.cli
from etcdpki.util import STATUS_SUCCESS


@patch("etcdpki.cli.build_reconcile_context")
def test_version_exits_before_connecting(mock_context, capsys):
    cli = etcdpki.cli.CLI(prog="etcdpki")

    assert cli.main(["--version"]) == STATUS_SUCCESS
    assert capsys.readouterr().out.startswith("etcdpki, version ")
    mock_context.assert_not_called()


@patch("etcdpki.sync.run_pass", return_value=STATUS_SUCCESS)
@patch("etcdpki.cli.build_reconcile_context")
def test_once_runs_a_single_pass(mock_context, mock_run_pass):
    sync = MagicMock()
    cli = etcdpki.cli.CLI(sync=sync, prog="etcdpki")

    assert cli.main(["--once"]) == STATUS_SUCCESS
    mock_run_pass.assert_called_once_with(sync, mock_context.return_value)


@patch("etcdpki.sync.run_pass", return_value=STATUS_SUCCESS)
@patch("etcdpki.cli.build_reconcile_context")
def test_selected_stages(mock_context, mock_run_pass):
    cli = etcdpki.cli.CLI(prog="etcdpki")

    cli.main(["--once", "--selected-stages", "signers,bundles"])

    sync = mock_run_pass.call_args.args[0]
    assert list(sync._stages) == ["signers", "bundles"]


@patch("etcdpki.cli.build_reconcile_context")
def test_invalid_selected_stages(mock_context):
    cli = etcdpki.cli.CLI(prog="etcdpki")

    with pytest.raises(ValueError):
        cli.main(["--once", "--selected-stages", "signers,everything"])
    mock_context.assert_not_called()


@patch("etcdpki.sync.install_stop_event")
@patch("etcdpki.sync.run_forever", return_value=STATUS_SUCCESS)
@patch("etcdpki.cli.build_reconcile_context")
def test_runs_forever_by_default(mock_context, mock_run_forever, mock_install):
    sync = MagicMock()

    assert etcdpki.cli.CLI(sync=sync, prog="etcdpki").main([]) == STATUS_SUCCESS
    mock_install.assert_called_once_with(mock_context.return_value.stop_event)
    mock_run_forever.assert_called_once_with(sync, mock_context.return_value, 60)
