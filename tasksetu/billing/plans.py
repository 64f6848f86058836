from dataclasses import dataclass

from tasksetu.models.enums import LicenseCode

@dataclass(frozen=True)
class LicensePlan:
    code: LicenseCode
    name: str
    description: str
    price_monthly: int
    price_yearly: int
    max_users: int | None  # None = unlimited
    trial_days: int | None = None

@dataclass(frozen=True)
class FeatureLimit:
    enabled: bool
    limit: int | None = None  # None = unlimited
    period: str | None = None  # MONTH | DAY | LIFETIME

LICENSE_PLANS: dict[LicenseCode, LicensePlan] = {
    LicenseCode.explore: LicensePlan(
        LicenseCode.explore, "Explore (Free)", "First-time users, 15 day trial", 0, 0, 10, trial_days=15
    ),
    LicenseCode.plan: LicensePlan(LicenseCode.plan, "Plan", "Individuals / small teams", 19, 190, 25),
    LicenseCode.execute: LicensePlan(LicenseCode.execute, "Execute", "Growing teams", 49, 490, 100),
    LicenseCode.optimize: LicensePlan(LicenseCode.optimize, "Optimize", "Large organizations", 99, 990, None),
}

FEATURES: dict[str, str] = {
    "TASK_BASIC": "Basic task management",
    "TASK_SUB": "Sub-task organization",
    "TASK_QUICK": "Quick task entry",
    "TASK_RECUR": "Recurring tasks",
    "TASK_APPROVAL": "Approval workflows",
    "TASK_MSTONE": "Milestone management",
    "TASK_CAL": "Calendar integration",
    "TASK_EMAIL": "Email task creation",
    "FORM_CREATE": "Custom form builder",
    "PROC_CREATE": "Process automation",
    "REPORT_BASIC": "Basic reporting",
    "REPORT_ADV": "Advanced reporting",
    "NOTIF_BASIC": "Basic notifications",
    "NOTIF_ADV": "Advanced notifications",
    "API_ACCESS": "API access",
    "SSO_LOGIN": "Single sign-on",
    "DED_SUPPORT": "Dedicated support",
}

_OFF = FeatureLimit(enabled=False)
_UNLIMITED = FeatureLimit(enabled=True)

def _month(n: int) -> FeatureLimit:
    return FeatureLimit(enabled=True, limit=n, period="MONTH")

FEATURE_LIMITS: dict[LicenseCode, dict[str, FeatureLimit]] = {
    LicenseCode.explore: {
        "TASK_BASIC": _month(20),
        "TASK_SUB": _month(10),
        "TASK_RECUR": _month(1),
        "TASK_APPROVAL": _OFF,
        "TASK_MSTONE": _OFF,
        "TASK_QUICK": _month(50),
        "FORM_CREATE": FeatureLimit(enabled=True, limit=2, period="LIFETIME"),
        "PROC_CREATE": FeatureLimit(enabled=True, limit=1, period="LIFETIME"),
        "TASK_EMAIL": _month(10),
        "TASK_CAL": _UNLIMITED,
        "REPORT_BASIC": _UNLIMITED,
        "REPORT_ADV": _month(3),
        "NOTIF_BASIC": _UNLIMITED,
        "NOTIF_ADV": _OFF,
        "API_ACCESS": FeatureLimit(enabled=True, limit=5, period="DAY"),
        "SSO_LOGIN": _OFF,
        "DED_SUPPORT": _OFF,
    },
    LicenseCode.plan: {
        "TASK_BASIC": _month(100),
        "TASK_SUB": _month(50),
        "TASK_RECUR": _month(10),
        "TASK_APPROVAL": _month(20),
        "TASK_MSTONE": _month(5),
        "TASK_QUICK": _UNLIMITED,
        "FORM_CREATE": FeatureLimit(enabled=True, limit=10, period="LIFETIME"),
        "PROC_CREATE": FeatureLimit(enabled=True, limit=5, period="LIFETIME"),
        "TASK_EMAIL": _month(100),
        "TASK_CAL": _UNLIMITED,
        "REPORT_BASIC": _UNLIMITED,
        "REPORT_ADV": _month(10),
        "NOTIF_BASIC": _UNLIMITED,
        "NOTIF_ADV": _UNLIMITED,
        "API_ACCESS": FeatureLimit(enabled=True, limit=500, period="DAY"),
        "SSO_LOGIN": _OFF,
        "DED_SUPPORT": _OFF,
    },
    LicenseCode.execute: {
        **{code: _UNLIMITED for code in FEATURES},
        "SSO_LOGIN": _OFF,
        "DED_SUPPORT": _OFF,
    },
    LicenseCode.optimize: {code: _UNLIMITED for code in FEATURES},
}

def get_plan(code: LicenseCode | str) -> LicensePlan | None:
    try:
        return LICENSE_PLANS.get(LicenseCode(code))
    except ValueError:
        return None

def feature_limit(code: LicenseCode | str, feature: str) -> FeatureLimit:
    plan = get_plan(code)
    if plan is None:
        return _OFF
    return FEATURE_LIMITS[plan.code].get(feature, _OFF)
