from unittest.mock import patch

from ozon_size_monitor import config, main


@patch("ozon_size_monitor.main.reconciler.run_scan")
def test_scan_once_uses_configured_settings(mock_run_scan) -> None:
    main.scan_once()

    mock_run_scan.assert_called_once_with(
        allow_list=config.TRACK_OFFER_IDS,
        page_size=config.PAGE_SIZE,
        concurrency=config.SCAN_CONCURRENCY,
        mode=config.SIZE_TRACKING_MODE,
        patterns=config.SIZE_ATTRIBUTE_PATTERNS,
        notify_new=config.NOTIFY_ON_NEW_PRODUCT,
    )


@patch("ozon_size_monitor.main.notifier.notify_all")
def test_report_error_sends_one_operator_message(mock_notify) -> None:
    main.report_error(RuntimeError("listing <down>"))

    [text] = mock_notify.call_args.args
    assert "Monitoring error" in text
    assert "listing &lt;down&gt;" in text


@patch("ozon_size_monitor.main.notifier.notify_all")
def test_report_error_falls_back_to_exception_name(mock_notify) -> None:
    main.report_error(TimeoutError())

    assert "TimeoutError" in mock_notify.call_args.args[0]
