import asyncio
from unittest.mock import MagicMock, Mock

from selenium.common.exceptions import WebDriverException

from streamdesk.services.automation.selenium_tv_login import MSG_NO_CODE, SeleniumTvLogin


def _driver():
    driver = MagicMock()
    element = driver.find_element.return_value
    element.is_displayed.return_value = True
    element.is_enabled.return_value = True
    driver.find_elements.return_value = [element]
    return driver


class TestSeleniumTvLogin:
    def test_no_signin_code_arrives(self, tmp_path):
        driver = _driver()
        repository = Mock()
        repository.latest_unused_code.return_value = None
        login = SeleniumTvLogin(
            repository, str(tmp_path), driver_factory=lambda: driver, wait_seconds=1, code_wait_seconds=0
        )

        result = asyncio.run(login.verify_tv_code("ana@mail.com", "secreta", "12345678"))

        assert result.ok is False
        assert result.error == MSG_NO_CODE
        assert result.error_code == "no_signin_code"
        repository.latest_unused_code.assert_called_with("ana@mail.com", "Netflix")
        repository.mark_code_used.assert_not_called()
        driver.quit.assert_called_once()

    def test_driver_start_failure(self, tmp_path):
        def broken_factory():
            raise WebDriverException("chrome not found")

        login = SeleniumTvLogin(Mock(), str(tmp_path), driver_factory=broken_factory)
        result = asyncio.run(login.verify_tv_code("ana@mail.com", "secreta", "12345678"))

        assert result.ok is False
        assert result.error_code == "webdriver"
        assert "WebDriverException" in result.error

    def test_driver_error_mid_flow_still_quits(self, tmp_path):
        driver = _driver()
        driver.get.side_effect = WebDriverException("net::ERR_NAME_NOT_RESOLVED")
        login = SeleniumTvLogin(Mock(), str(tmp_path), driver_factory=lambda: driver)

        result = asyncio.run(login.verify_tv_code("ana@mail.com", "secreta", "12345678"))

        assert result.error_code == "webdriver"
        driver.quit.assert_called_once()
