"""Cookie-consent handling injected into every page.

Two pieces:
- an init script registered with ``page.add_init_script`` so it runs before
  any site JavaScript and keeps dismissing consent dialogs as they appear;
- a post-load opt-out that clicks a reject button once the page settled.

A pre-bundled consent script (for example an autoconsent build) can replace
the built-in init script via ``consent_script_path``.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = logging.getLogger(__name__)

# Reject / "necessary only" buttons of the common consent management platforms,
# tried in order.
REJECT_SELECTORS: tuple[str, ...] = (
    "#onetrust-reject-all-handler",
    "#CybotCookiebotDialogBodyButtonDecline",
    "#didomi-notice-disagree-button",
    ".qc-cmp2-summary-buttons button[mode='secondary']",
    "#truste-consent-required",
    "button[data-testid='uc-deny-all-button']",
    ".sp_choice_type_REJECT_ALL",
    ".cmpboxbtnno",
    "#cookiescript_reject",
    ".cc-deny",
    "button[aria-label='Reject all']",
)

_SELECTORS_JSON = json.dumps(list(REJECT_SELECTORS))

BUILTIN_CONSENT_SCRIPT = (
    """
(() => {
  const selectors = %s;
  const rejectOnce = () => {
    for (const selector of selectors) {
      const button = document.querySelector(selector);
      if (button && typeof button.click === 'function') {
        button.click();
        return true;
      }
    }
    return false;
  };
  const start = () => {
    if (rejectOnce()) return;
    const observer = new MutationObserver(() => {
      if (rejectOnce()) observer.disconnect();
    });
    observer.observe(document.documentElement, { childList: true, subtree: true });
    setTimeout(() => observer.disconnect(), 15000);
  };
  if (document.readyState === 'loading') {
    document.addEventListener('DOMContentLoaded', start, { once: true });
  } else {
    start();
  }
})();
"""
    % _SELECTORS_JSON
)

OPT_OUT_SCRIPT = (
    """
() => {
  const selectors = %s;
  for (const selector of selectors) {
    const button = document.querySelector(selector);
    if (button && typeof button.click === 'function') {
      button.click();
      return selector;
    }
  }
  return null;
}
"""
    % _SELECTORS_JSON
)


class ConsentHandler:
    """Inject consent handling into a page and opt out after load."""

    def __init__(self, script_path: str | None = None) -> None:
        self._script_path = script_path
        self._script: str | None = None

    def script(self) -> str:
        """Return the init script, reading ``script_path`` once and caching it."""
        if self._script is None:
            if self._script_path:
                self._script = Path(self._script_path).read_text(encoding="utf-8")
                logger.info("Loaded consent script from %s", self._script_path)
            else:
                self._script = BUILTIN_CONSENT_SCRIPT
        return self._script

    async def install(self, page: Page) -> None:
        """Register the consent script to run before any page script."""
        await page.add_init_script(self.script())
        logger.debug("Consent script injected")

    async def opt_out(self, page: Page) -> str | None:
        """Click the first matching reject button on the loaded page.

        Returns:
            The selector that was clicked, or None if no dialog was found.
        """
        clicked = await page.evaluate(OPT_OUT_SCRIPT)
        if clicked:
            logger.debug("Consent opt-out clicked %s", clicked)
        return clicked
