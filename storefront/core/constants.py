"""Store constants: currency and Uruguayan administrative regions"""

APP_NAME = "Bengala Max"
DEFAULT_CURRENCY = "UYU"
DEFAULT_COUNTRY = "UY"
DEFAULT_LOCALE = "es-UY"

URUGUAY_DEPARTMENTS: tuple[str, ...] = (
    "Montevideo",
    "Canelones",
    "Maldonado",
    "Salto",
    "Paysandú",
    "Rivera",
    "Colonia",
    "San José",
    "Soriano",
    "Cerro Largo",
    "Tacuarembó",
    "Rocha",
    "Florida",
    "Lavalleja",
    "Durazno",
    "Artigas",
    "Río Negro",
    "Treinta y Tres",
    "Flores",
)

URUGUAY_CITIES: dict[str, list[str]] = {
    "Montevideo": ["Montevideo"],
    "Canelones": [
        "Las Piedras", "Ciudad de la Costa", "Pando", "La Paz", "Progreso",
        "Santa Lucía", "Canelones", "Sauce", "Toledo", "Barros Blancos",
        "Salinas", "Solymar", "Shangrilá", "Atlántida", "Parque del Plata",
    ],
    "Maldonado": ["Maldonado", "Punta del Este", "San Carlos", "Pan de Azúcar", "Piriápolis", "Aiguá"],
    "Salto": ["Salto", "Constitución", "Belén"],
    "Paysandú": ["Paysandú", "Guichón", "Quebracho"],
    "Rivera": ["Rivera", "Tranqueras", "Vichadero", "Minas de Corrales"],
    "Colonia": [
        "Colonia del Sacramento", "Carmelo", "Juan Lacaze", "Nueva Helvecia",
        "Rosario", "Nueva Palmira", "Tarariras",
    ],
    "San José": ["San José de Mayo", "Ciudad del Plata", "Libertad", "Ecilda Paullier", "Delta del Tigre"],
    "Soriano": ["Mercedes", "Dolores", "Cardona", "José Enrique Rodó"],
    "Cerro Largo": ["Melo", "Río Branco", "Fraile Muerto"],
    "Tacuarembó": ["Tacuarembó", "Paso de los Toros", "San Gregorio de Polanco"],
    "Rocha": ["Rocha", "Chuy", "Castillos", "Lascano", "La Paloma", "La Pedrera"],
    "Florida": ["Florida", "Sarandí Grande", "Casupá", "Fray Marcos"],
    "Lavalleja": ["Minas", "José Pedro Varela", "Solís de Mataojo"],
    "Durazno": ["Durazno", "Sarandí del Yí"],
    "Artigas": ["Artigas", "Bella Unión", "Tomás Gomensoro", "Baltasar Brum"],
    "Río Negro": ["Fray Bentos", "Young", "San Javier", "Nuevo Berlín"],
    "Treinta y Tres": ["Treinta y Tres", "Vergara", "Santa Clara de Olimar"],
    "Flores": ["Trinidad", "Ismael Cortinas"],
}


def is_department(value: str) -> bool:
    return value in URUGUAY_DEPARTMENTS
