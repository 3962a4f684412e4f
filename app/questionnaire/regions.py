"""Anatomical regions offered by the complaint pickers.

Each picker answer is a set of region ids drawn from one of these maps.
Labels are the Portuguese captions shown next to the diagram.
"""

FACIAL_REGIONS: dict[str, str] = {
    "braveza": "Braveza",
    "linhas-periorbitais": "Linhas periorbitais",
    "rugas-palpebra-inferior": "Rugas pálpebra inferior",
    "lobulo-orelha": "Lóbulo orelha",
    "bigode-chines": "Bigode chinês",
    "rugas-marionete": "Rugas marionete",
    "sulco-mentolabial": "Sulco mentolabial",
    "celulite-queixo": "Celulite de queixo",
    "rugas-testa": "Rugas na testa",
    "pes-de-galinha": "Pés de galinha",
    "linha-nasal": "Linha nasal",
    "cicatriz-acne": "Cicatriz de acne",
    "regiao-perioral": "Região perioral",
    "labios-superior": "Lábio superior",
    "labios-inferior": "Lábio inferior",
    "mento": "Mento",
}

BODY_REGIONS: dict[str, str] = {
    "papada": "Papada",
    "pescoco": "Pescoço",
    "colo": "Colo",
    "mama": "Mama",
    "abdomen": "Abdômen",
    "umbigo": "Umbigo",
    "intimo": "Íntimo",
    "maos": "Mãos",
    "coxa": "Coxa",
    "joelho": "Joelho",
    "braco": "Braço",
    "costas": "Costas",
    "flancos": "Flancos",
    "culote": "Culote",
    "celulite": "Celulite",
    "gluteos": "Glúteos",
    "bananinha": "Bananinha",
    "regiao-interna-coxas": "Região interna das coxas",
}

FACIAL_COMPLAINT_IDS = frozenset(FACIAL_REGIONS)
BODY_COMPLAINT_IDS = frozenset(BODY_REGIONS)


def region_label(region_id: str) -> str:
    """Return the display label for a region id, or the id itself."""
    return FACIAL_REGIONS.get(region_id) or BODY_REGIONS.get(region_id) or region_id
