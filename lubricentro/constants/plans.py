# lubricentro/constants/plans.py

from typing import Optional


TRIAL_LIMITS = {
    "days": 7,
    "services": 10,
    "users": 2,
}

RENEWAL_TYPES = {
    "monthly": 1,
    "semiannual": 6,
}

# Minimum contract length, in months, for a paid subscription.
MIN_CONTRACT_MONTHS = 6

# Usage ratio above which a tenant is flagged for superadmin review.
USAGE_ATTENTION_RATIO = 0.9

# Trials/subscriptions ending within this many days are "expiring".
EXPIRING_SOON_DAYS = 7

DEFAULT_PLAN = "starter"

SUBSCRIPTION_PLANS = {
    "starter": {
        "id": "starter",
        "name": "Plan Iniciante",
        "description": "Ideal para lubricentros que están comenzando",
        "price": {"monthly": 1500, "semiannual": 8000},
        "max_users": 1,
        "max_monthly_services": 25,
        "features": [
            "1 usuario",
            "Hasta 25 servicios por mes",
            "Registro básico de cambios de aceite",
            "Historial simple de vehículos",
            "Soporte por email",
        ],
        "recommended": False,
    },
    "basic": {
        "id": "basic",
        "name": "Plan Básico",
        "description": "Ideal para lubricentros pequeños",
        "price": {"monthly": 2500, "semiannual": 12000},
        "max_users": 2,
        "max_monthly_services": 50,
        "features": [
            "Hasta 2 usuarios",
            "Hasta 50 servicios por mes",
            "Registro de cambios de aceite",
            "Historial de vehículos",
            "Reportes básicos",
            "Soporte por email",
        ],
        "recommended": False,
    },
    "premium": {
        "id": "premium",
        "name": "Plan Premium",
        "description": "Perfecto para lubricentros en crecimiento",
        "price": {"monthly": 4500, "semiannual": 22500},
        "max_users": 5,
        "max_monthly_services": 150,
        "features": [
            "Hasta 5 usuarios",
            "Hasta 150 servicios por mes",
            "Todas las funciones del Plan Básico",
            "Recordatorios automáticos",
            "Reportes avanzados",
            "Exportación de datos",
            "Soporte prioritario",
        ],
        "recommended": True,
    },
    "enterprise": {
        "id": "enterprise",
        "name": "Plan Empresarial",
        "description": "Para lubricentros grandes y cadenas",
        "price": {"monthly": 7500, "semiannual": 37500},
        "max_users": 999,
        "max_monthly_services": None,  # unlimited
        "features": [
            "Usuarios ilimitados",
            "Servicios ilimitados",
            "Todas las funciones Premium",
            "Integración con sistemas externos",
            "Reportes personalizados",
            "Soporte 24/7",
            "Gestor de cuenta dedicado",
        ],
        "recommended": False,
    },
}


def get_plan(plan_id: Optional[str]) -> Optional[dict]:
    if not plan_id:
        return None
    return SUBSCRIPTION_PLANS.get(plan_id)


def renewal_months(renewal_type: Optional[str]) -> int:
    return RENEWAL_TYPES.get(renewal_type or "monthly", 1)


def plan_price(plan_id: str, renewal_type: Optional[str] = "monthly") -> float:
    plan = get_plan(plan_id)
    if not plan:
        return 0
    return plan["price"].get(renewal_type or "monthly", plan["price"]["monthly"])
