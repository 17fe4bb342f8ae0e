from streamdesk.services.automation.base import TvLoginAutomation, TvLoginOutcome

__all__ = ["TvLoginAutomation", "TvLoginOutcome"]
