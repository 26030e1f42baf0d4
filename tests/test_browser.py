import unittest
from unittest.mock import MagicMock

from playwright.sync_api import Error as PlaywrightError

from sources.browser import BrowserSession


class TestBrowserSessionShutdown(unittest.TestCase):

    def make_started_session(self):
        session = BrowserSession()
        session._playwright = MagicMock()
        session._browser = MagicMock()
        session._context = MagicMock()
        return session

    def test_close_releases_everything(self):
        session = self.make_started_session()
        playwright, browser, context = session._playwright, session._browser, session._context
        session.close()
        context.close.assert_called_once_with()
        browser.close.assert_called_once_with()
        playwright.stop.assert_called_once_with()
        self.assertIsNone(session._playwright)

    def test_shutdown_errors_are_logged_not_raised(self):
        session = self.make_started_session()
        session._browser.close.side_effect = PlaywrightError("Target closed")
        session._playwright.stop.side_effect = RuntimeError("event loop is closed")
        with self.assertLogs("sources.browser", level="WARNING") as logs:
            session.close()
        self.assertIn("Failed to stop Playwright", logs.output[0])
        self.assertIsNone(session._context)

    def test_close_without_start_is_a_no_op(self):
        BrowserSession().close()


if __name__ == "__main__":
    unittest.main()
