import asyncio
import time
from pathlib import Path
from typing import Callable, Optional

from selenium import webdriver
from selenium.common.exceptions import TimeoutException, WebDriverException
from selenium.webdriver.common.by import By
from selenium.webdriver.remote.webdriver import WebDriver
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait

from streamdesk.logging_config import get_logger
from streamdesk.services.account_service import AccountRepository
from streamdesk.services.automation.base import TvLoginAutomation, TvLoginOutcome
from streamdesk.services.result import Result
from streamdesk.services.state_machine import TV_SERVICE

logger = get_logger("selenium_tv_login")

LOGIN_URL = "https://www.netflix.com/mx/login"
TV_URL = "https://www.netflix.com/tv8"
SUCCESS_PATH = "/tv/out/success"

USE_CODE_BUTTON = '[data-uia="use-code-button"]'
LOGIN_ID_FIELD = '[data-uia="field-userLoginId"]'
PASSWORD_FIELD = '[data-uia="field-password"]'
SEND_CODE_BUTTON = '[data-uia="send-code-button"]'
PIN_ENTRY = '[data-uia="verify-pin-entry"]'
SIGN_IN_BUTTON = '[data-uia="sign-in-button"]'
TV_PIN_INPUTS = "input.pin-number-input"
TV_CONTINUE_BUTTON = "button.tvsignup-continue-button"

MSG_SUCCESS = "✅ Tu TV quedó lista para ver Netflix 🎉"
MSG_NO_CODE = "⚠️ No hay código disponible para este correo en la base de datos."
MSG_NOT_CONFIRMED = "❌ No se detectó confirmación de acceso en TV."


def chrome_driver() -> WebDriver:
    options = webdriver.ChromeOptions()
    options.add_argument("--headless=new")
    options.add_argument("--no-sandbox")
    options.add_argument("--disable-dev-shm-usage")
    return webdriver.Chrome(options=options)


class SeleniumTvLogin(TvLoginAutomation):
    """Headless Chrome flow: log in with an emailed sign-in code, then pair the TV.

    The sign-in code is read from the `codes` table, where the mail ingester
    stores it; the code is marked used once the TV is paired.
    """

    def __init__(
        self,
        repository: AccountRepository,
        screenshots_dir: str,
        driver_factory: Callable[[], WebDriver] = chrome_driver,
        wait_seconds: float = 10.0,
        code_wait_seconds: float = 60.0,
        code_poll_seconds: float = 5.0,
    ):
        self.repository = repository
        self.screenshots_dir = Path(screenshots_dir)
        self.driver_factory = driver_factory
        self.wait_seconds = wait_seconds
        self.code_wait_seconds = code_wait_seconds
        self.code_poll_seconds = code_poll_seconds

    async def verify_tv_code(self, email: str, password: Optional[str], code: str) -> Result[TvLoginOutcome]:
        return await asyncio.to_thread(self._run, email, password, code)

    def _run(self, email: str, password: Optional[str], code: str) -> Result[TvLoginOutcome]:
        driver = None
        try:
            driver = self.driver_factory()
            wait = WebDriverWait(driver, self.wait_seconds)

            driver.get(LOGIN_URL)
            signin_code = self._sign_in(driver, wait, email, password)
            if signin_code is False:
                return Result.failure(MSG_NO_CODE, "no_signin_code")

            driver.get(TV_URL)
            wait.until(EC.presence_of_element_located((By.CSS_SELECTOR, TV_PIN_INPUTS)))
            inputs = driver.find_elements(By.CSS_SELECTOR, TV_PIN_INPUTS)
            if len(inputs) != len(code):
                return Result.failure(f"❌ El código TV debe tener {len(inputs)} dígitos.", "tv_code_length")
            for field, digit in zip(inputs, code):
                field.send_keys(digit)
            driver.find_element(By.CSS_SELECTOR, TV_CONTINUE_BUTTON).click()

            try:
                WebDriverWait(driver, self.wait_seconds).until(EC.url_contains(SUCCESS_PATH))
            except TimeoutException:
                logger.warning(f"TV pairing not confirmed: url={driver.current_url}")
                return Result.failure(MSG_NOT_CONFIRMED, "not_confirmed")

            screenshot = self._capture(driver)
            if signin_code:
                self.repository.mark_code_used(email, signin_code)
            logger.info("TV paired", extra={"context": {"email": email}})
            return Result.success(TvLoginOutcome(message=MSG_SUCCESS, screenshot=screenshot))
        except (TimeoutException, WebDriverException) as e:
            logger.error(f"TV login automation failed: {e}", exc_info=True)
            return Result.failure(f"❌ Error en el proceso: {e.__class__.__name__}", "webdriver")
        finally:
            if driver is not None:
                try:
                    driver.quit()
                except WebDriverException as e:
                    logger.warning(f"Failed to quit driver: {e}")

    def _sign_in(self, driver: WebDriver, wait: WebDriverWait, email: str, password: Optional[str]):
        """Returns the sign-in code used, None for password login, False when no code arrived."""
        use_code = driver.find_elements(By.CSS_SELECTOR, USE_CODE_BUTTON)
        if not use_code and password:
            wait.until(EC.element_to_be_clickable((By.CSS_SELECTOR, LOGIN_ID_FIELD))).send_keys(email)
            driver.find_element(By.CSS_SELECTOR, PASSWORD_FIELD).send_keys(password)
            before = driver.current_url
            driver.find_element(By.CSS_SELECTOR, SIGN_IN_BUTTON).click()
            wait.until(EC.url_changes(before))
            return None

        wait.until(EC.element_to_be_clickable((By.CSS_SELECTOR, USE_CODE_BUTTON))).click()
        wait.until(EC.element_to_be_clickable((By.CSS_SELECTOR, LOGIN_ID_FIELD))).send_keys(email)
        driver.find_element(By.CSS_SELECTOR, SEND_CODE_BUTTON).click()

        signin_code = self._wait_for_signin_code(email)
        if not signin_code:
            return False

        wait.until(EC.presence_of_element_located((By.CSS_SELECTOR, PIN_ENTRY))).send_keys(signin_code)
        before = driver.current_url
        driver.find_element(By.CSS_SELECTOR, SIGN_IN_BUTTON).click()
        wait.until(EC.url_changes(before))
        return signin_code

    def _wait_for_signin_code(self, email: str) -> Optional[str]:
        deadline = time.monotonic() + self.code_wait_seconds
        while True:
            signin_code = self.repository.latest_unused_code(email, TV_SERVICE.value)
            if signin_code:
                return signin_code
            if time.monotonic() >= deadline:
                logger.warning(f"No sign-in code arrived for {email}")
                return None
            time.sleep(self.code_poll_seconds)

    def _capture(self, driver: WebDriver) -> bytes:
        self.screenshots_dir.mkdir(parents=True, exist_ok=True)
        path = self.screenshots_dir / f"tvcode-success-{int(time.time() * 1000)}.png"
        driver.save_screenshot(str(path))
        return path.read_bytes()
