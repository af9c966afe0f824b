"""
Service: rules_catalog.py
Rôle:
- Référentiel statique des règles : systèmes de jeu, boutique de départ OD2, bestiaire,
  descriptions de classes/races et base de connaissance fournie à l'Oracle.
- Sessions d'exemple injectées quand la base est vide (tableau de bord non vide au premier lancement).

API:
- RULES.system(id) / RULES.systems()
- RULES.monster(name) / RULES.monsters()
- RULES.gear() / RULES.gear_item(name)
"""
from typing import Dict, List, Optional

from app.models.character import Item
from app.models.combat import MonsterTemplate
from app.models.enums import ItemType
from app.models.game import GameSession, RulesSystem

REFERENCE_SYSTEM_ID = "od2"

SYSTEMS: Dict[str, RulesSystem] = {
    "od2": RulesSystem(
        id="od2",
        name="Old Dragon 2e",
        description="Aventuras Clássicas de Fantasia. Um sistema OSR brasileiro focado em simplicidade.",
        attributes=["FOR", "DES", "CON", "INT", "SAB", "CAR"],
        races=["Humano", "Anão", "Elfo", "Halfling"],
        classes=["Guerreiro", "Clérigo", "Mago", "Ladrão", "Bárbaro", "Paladino", "Druida", "Ranger", "Bardo"],
    ),
    "t20": RulesSystem(
        id="t20",
        name="Tormenta 20",
        description="O maior RPG do Brasil. Fantasia épica em Arton.",
        attributes=["FOR", "DES", "CON", "INT", "SAB", "CAR"],
        races=["Humano", "Lefou", "Qareen", "Minotauro", "Goblin"],
        classes=[
            "Arcanista", "Bárbaro", "Bardo", "Bucaneiro", "Caçador", "Cavaleiro", "Clérigo",
            "Druida", "Guerreiro", "Inventor", "Ladino", "Lutador", "Nobre", "Paladino",
        ],
    ),
    "alpha": RulesSystem(
        id="alpha",
        name="3D&T Alpha",
        description="Defensores de Tóquio. Anime, mangá e aventuras exageradas.",
        attributes=["F", "H", "R", "A", "PdF"],
        races=["Humano", "Elfo", "Anão", "Alienígena", "Androide"],
        classes=["Aventureiro"],
    ),
}

OD2_STARTING_GEAR: List[Item] = [
    Item(name="Espada Longa", cost=10, type=ItemType.WEAPON, damage="1d8"),
    Item(name="Espada Curta", cost=6, type=ItemType.WEAPON, damage="1d6"),
    Item(name="Adaga", cost=2, type=ItemType.WEAPON, damage="1d4"),
    Item(name="Machado de Batalha", cost=10, type=ItemType.WEAPON, damage="1d8"),
    Item(name="Arco Curto", cost=25, type=ItemType.WEAPON, damage="1d6"),
    Item(name="Armadura de Couro", cost=20, type=ItemType.ARMOR, ac=2),
    Item(name="Cota de Malha", cost=60, type=ItemType.ARMOR, ac=4),
    Item(name="Escudo", cost=10, type=ItemType.ARMOR, ac=1),
    Item(name="Mochila", cost=2, type=ItemType.GEAR),
    Item(name="Corda (15m)", cost=1, type=ItemType.GEAR),
    Item(name="Tocha (5)", cost=1, type=ItemType.GEAR),
    Item(name="Rações de Viagem (7)", cost=5, type=ItemType.GEAR),
    Item(name="Cantil", cost=1, type=ItemType.GEAR),
]

MONSTERS: List[MonsterTemplate] = [
    MonsterTemplate(name="Goblin", hp="1d6", ac=12, initiative=1, xp=15),
    MonsterTemplate(name="Orc", hp="1d8+1", ac=13, initiative=0, xp=35),
    MonsterTemplate(name="Esqueleto", hp="1d6", ac=12, initiative=0, xp=15),
    MonsterTemplate(name="Zumbi", hp="2d8", ac=11, initiative=-1, xp=50),
    MonsterTemplate(name="Gnoll", hp="2d8", ac=14, initiative=1, xp=65),
    MonsterTemplate(name="Ogro", hp="4d8+4", ac=14, initiative=0, xp=200),
    MonsterTemplate(name="Lobo", hp="2d8", ac=13, initiative=2, xp=65),
    MonsterTemplate(name="Bandido", hp="1d6", ac=11, initiative=1, xp=15),
    MonsterTemplate(name="Necromante", hp="4d4", ac=10, initiative=1, xp=150),
    MonsterTemplate(name="Dragão Jovem", hp="10d8", ac=18, initiative=2, xp=2000),
]

CLASS_FEATURES: Dict[str, str] = {
    "Guerreiro": "D10 PV/nível. Usa todas as armas e armaduras. Bônus de ataque progressivo.",
    "Clérigo": "D8 PV/nível. Magia divina, expulsa mortos-vivos. Proibido armas de corte.",
    "Mago": "D4 PV/nível. Magia arcana poderosa. Não usa armadura. Acesso a grimório.",
    "Ladrão": "D6 PV/nível. Perícias de ladinagem, ataque furtivo. Armaduras leves apenas.",
}

RACE_FEATURES: Dict[str, str] = {
    "Humano": "Versáteis. +10% XP. +1 em uma jogada de proteção à escolha.",
    "Anão": "Infravisão. Detectar construções. Resistência a veneno/magia. +1 ataque vs orcs.",
    "Elfo": "Infravisão. Imune a paralisia ghouls. +1 ataque com arcos/espadas longas.",
    "Halfling": "Furtividade natural. +1 ataque arremesso. +2 CA vs criaturas grandes.",
}

OD2_KNOWLEDGE_BASE = """
SISTEMA: Old Dragon 2ª Edição (OD2).
CONCEITO: RPG Old School, focado em simplicidade, exploração e perigo.
ATRIBUTOS: Força (FOR), Destreza (DES), Constituição (CON), Inteligência (INT), Sabedoria (SAB), Carisma (CAR).
MODIFICADORES: 3(-3), 4-5(-2), 6-8(-1), 9-12(0), 13-14(+1), 15-16(+2), 17-18(+3).
CLASSES:
- Guerreiro: Combate, usa todas as armas/armaduras. D10 de vida.
- Clérigo: Magia divina, expulsa mortos-vivos. Usa armaduras, armas de impacto. D8 de vida.
- Mago: Magia arcana, frágil. Não usa armadura. D4 de vida.
- Ladrão: Perícias (abrir fechaduras, furtividade), ataque furtivo. D6 de vida.
BASE DE ATAQUE (BA): Modificador somado ao D20 para atacar.
CLASSE DE ARMADURA (CA): Dificuldade para ser acertado. 10 + DES + Armadura.
TESTES: Role 1d20. Para atributos, tire MENOS ou IGUAL ao atributo. Para ataques, supere a CA.
"""

SAMPLE_GAMES: List[GameSession] = [
    GameSession(
        id="1",
        name="A Tumba do Rei Esqueleto",
        system_id="od2",
        gm_id="gm1",
        gm_name="Mestre Ancião",
        player_count=4,
        next_session="Hoje, 20:00",
        description="Uma masmorra clássica cheia de perigos e tesouros antigos.",
        banner_url="https://picsum.photos/id/1036/400/200",
        invite_code="SKEL123",
    ),
    GameSession(
        id="2",
        name="Coração de Rubi",
        system_id="t20",
        gm_id="gm2",
        gm_name="Lady Dice",
        player_count=5,
        next_session="Sábado, 19:00",
        description="A jornada épica para salvar Arton da Tormenta.",
        banner_url="https://picsum.photos/id/1040/400/200",
        invite_code="RUBI456",
    ),
]


class RulesCatalog:
    """Accès en lecture au référentiel (copies, pour éviter toute mutation partagée)."""

    def system(self, system_id: str) -> Optional[RulesSystem]:
        return SYSTEMS.get(system_id)

    def systems(self) -> List[RulesSystem]:
        return list(SYSTEMS.values())

    def attribute_codes(self, system_id: str) -> List[str]:
        """Codes d'attributs dans l'ordre de la fiche ([] pour un système inconnu)."""
        system = SYSTEMS.get(system_id)
        return list(system.attributes) if system else []

    def monster(self, name: str) -> Optional[MonsterTemplate]:
        key = (name or "").strip().lower()
        for monster in MONSTERS:
            if monster.name.lower() == key:
                return monster.model_copy()
        return None

    def monsters(self) -> List[MonsterTemplate]:
        return [m.model_copy() for m in MONSTERS]

    def gear(self) -> List[Item]:
        return [i.model_copy() for i in OD2_STARTING_GEAR]

    def gear_item(self, name: str) -> Optional[Item]:
        for item in OD2_STARTING_GEAR:
            if item.name == name:
                return item.model_copy()
        return None

    def sample_games(self) -> List[GameSession]:
        return [g.model_copy() for g in SAMPLE_GAMES]


RULES = RulesCatalog()
