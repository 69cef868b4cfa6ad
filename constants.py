# constants.py
# Static configuration shared by the check-in flows and the admin screens.

ADMIN_PIN = "1234"

PLAN_DETAILS = {
    'plan_12_mes': {'name': '12 Clases / Mes (S/ 160)', 'classes': 12},
    'plan_8_mes': {'name': '8 Clases / Mes (S/ 140)', 'classes': 8},
    'plan_kids': {'name': '8 Clases Kids (S/ 150)', 'classes': 8},
    'plan_20_mes': {'name': '20 Clases / Mes (S/ 210)', 'classes': 20},
}

CLASS_OPTIONS = [
    "BOX / MMA",
    "JIUJITSU GI",
    "JIUJITSU NO GI",
    "BOX KIDS",
    "LUTA LIVRE NO GI",
    "GI Y NO GI",
]

# Sunday first, matching the schedule vocabulary stored in the database
DAYS_OF_WEEK = ["Domingo", "Lunes", "Martes", "Miércoles", "Jueves", "Viernes", "Sábado"]

SEDES = ['chimbote', 'nuevo-chimbote']

SEDE_COORDINATES = {
    'chimbote': {'lat': -9.082020453334579, 'lon': -78.58087718807118},
    'nuevo-chimbote': {'lat': -9.129201596947674, 'lon': -78.52676890341348},
}

GEOFENCE_RADIUS_METERS = 500
LATE_AFTER_MINUTES = 10
MEMBERSHIP_DAYS = 30
AT_RISK_MAX_CLASSES = 3

GEOLOCATION_TIMEOUT_SECONDS = 10
REFRESH_INTERVAL_SECONDS = 60
ERROR_RETRY_SECONDS = 3

CSV_DATE_FORMAT = '%d/%m/%Y %H:%M:%S'
