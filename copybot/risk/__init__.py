from copybot.risk.engine import RiskCheckResult, RiskEngine
from copybot.risk.stats import RollingStats

__all__ = ["RiskCheckResult", "RiskEngine", "RollingStats"]
