from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, List, Optional
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel, Field

from ktprob.distribution import expected_value, kill_probability
from ktprob.errors import InvalidConfigurationError
from ktprob.killteam.abilities import REGISTRY, Ability, RerollStrategy
from ktprob.killteam.attack import resolve_across_saves
from ktprob.killteam.compare import Comparison, Situation, compare_situations
from ktprob.killteam.profile import (
    AttackProfile,
    BOLT_RIFLE,
    DEFAULT_ATTACKER,
    DEFAULT_DEFENDER,
    DefenseProfile,
    EXAMPLE_ATTACKERS,
    EXAMPLE_DEFENDERS,
    PLASMA_GUN,
    SPACE_MARINE,
    example_attacker,
    example_defender,
)

logger = logging.getLogger(__name__)

app = FastAPI(title="Kill Team shooting calculator")

# Setup templates and static files
BASE_DIR = Path(__file__).resolve().parent
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))
app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")


def _parse_abilities(names: List[str]) -> frozenset:
    try:
        return frozenset(Ability.parse(name) for name in names)
    except ValueError as e:
        raise InvalidConfigurationError(str(e)) from e


# Input ranges offered by the calculator's controls
MAX_DICE = 9
MAX_COUNT = 9
MAX_NORMAL_DAMAGE = 9
MAX_CRITICAL_DAMAGE = 10
MAX_PIERCING = 4
MAX_WOUNDS = 50


class AttackerIn(BaseModel):
    name: str = DEFAULT_ATTACKER.name
    num_dice: int = Field(DEFAULT_ATTACKER.num_dice, ge=0, le=MAX_DICE)
    success_threshold: int = DEFAULT_ATTACKER.success_threshold
    normal_damage: int = Field(DEFAULT_ATTACKER.normal_damage, ge=0, le=MAX_NORMAL_DAMAGE)
    critical_damage: int = Field(DEFAULT_ATTACKER.critical_damage, ge=0, le=MAX_CRITICAL_DAMAGE)
    devastating: int = Field(0, ge=0, le=MAX_COUNT)
    piercing: int = Field(0, ge=0, le=MAX_PIERCING)
    piercing_crits: int = Field(0, ge=0, le=MAX_PIERCING)
    lethal_threshold: int = DEFAULT_ATTACKER.lethal_threshold
    auto_normals: int = Field(0, ge=0, le=MAX_COUNT)
    auto_crits: int = Field(0, ge=0, le=MAX_COUNT)
    fails_to_normals: int = Field(0, ge=0, le=MAX_COUNT)
    normals_to_crits: int = Field(0, ge=0, le=MAX_COUNT)
    reroll: str = "none"
    abilities: List[str] = Field(default_factory=list)

    def to_profile(self) -> AttackProfile:
        fields = self.model_dump(exclude={"reroll", "abilities"})
        try:
            reroll = RerollStrategy.parse(self.reroll)
        except ValueError as e:
            raise InvalidConfigurationError(str(e)) from e
        return AttackProfile(reroll=reroll, abilities=_parse_abilities(self.abilities), **fields)


class DefenderIn(BaseModel):
    name: str = DEFAULT_DEFENDER.name
    save_threshold: int = DEFAULT_DEFENDER.save_threshold
    wounds: int = Field(DEFAULT_DEFENDER.wounds, le=MAX_WOUNDS)
    cover_saves: int = Field(0, ge=0, le=MAX_COUNT)
    cover_crit_saves: int = Field(0, ge=0, le=MAX_COUNT)
    feel_no_pain: Optional[int] = None
    abilities: List[str] = Field(default_factory=list)

    def to_profile(self) -> DefenseProfile:
        fields = self.model_dump(exclude={"abilities"})
        return DefenseProfile(abilities=_parse_abilities(self.abilities), **fields)


class SituationIn(BaseModel):
    attacker: AttackerIn = Field(default_factory=AttackerIn)
    defender: DefenderIn = Field(default_factory=DefenderIn)

    def to_situation(self) -> Situation:
        return Situation(attack=self.attacker.to_profile(), defense=self.defender.to_profile())


class CompareRequest(BaseModel):
    situation1: SituationIn = Field(default_factory=SituationIn)
    situation2: SituationIn = Field(default_factory=SituationIn)


def comparison_to_json(comparison: Comparison) -> Dict[str, Any]:
    def with_verdict(row: Any) -> Dict[str, Any]:
        data = asdict(row)
        data["diff"] = row.diff
        data["verdict"] = row.verdict.value
        return data

    return {
        "combo_wounds": comparison.combo_wounds,
        "averages": [with_verdict(row) for row in comparison.averages],
        "kill_tables": [
            {
                "save": table.save,
                "rows": [with_verdict(row) for row in table.rows],
                "zero_from": table.zero_from,
            }
            for table in comparison.kill_tables
        ],
        "combos": [asdict(row) for row in comparison.combos],
    }


def abilities_to_json() -> List[Dict[str, str]]:
    return [
        {
            "name": ability.name,
            "side": info.side.name.lower(),
            "effect": info.effect.name.lower(),
            "description": info.description,
        }
        for ability, info in REGISTRY.items()
    ]


@app.exception_handler(InvalidConfigurationError)
async def invalid_configuration(request: Request, exc: InvalidConfigurationError):
    logger.warning("Rejected configuration on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.get("/")
def home(request: Request,
         attacker1: str = BOLT_RIFLE.name, defender1: str = SPACE_MARINE.name,
         attacker2: str = PLASMA_GUN.name, defender2: str = SPACE_MARINE.name):
    situation1 = Situation(attack=example_attacker(attacker1), defense=example_defender(defender1))
    situation2 = Situation(attack=example_attacker(attacker2), defense=example_defender(defender2))
    comparison = compare_situations(situation1, situation2)
    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "situation1": situation1,
            "situation2": situation2,
            "comparison": comparison,
            "notes": abilities_to_json(),
        }
    )


@app.get("/api/abilities")
def abilities():
    return abilities_to_json()


@app.get("/api/profiles")
def profiles():
    return {
        "attackers": [asdict(p) | {"reroll": p.reroll.name, "abilities": sorted(a.name for a in p.abilities)}
                      for p in EXAMPLE_ATTACKERS.values()],
        "defenders": [asdict(p) | {"abilities": sorted(a.name for a in p.abilities)}
                      for p in EXAMPLE_DEFENDERS.values()],
    }


@app.post("/api/resolve")
def resolve(situation: SituationIn):
    attack = situation.attacker.to_profile()
    defense = situation.defender.to_profile()
    logger.info("Resolving %s vs %s", attack.name, defense.name)

    by_save = resolve_across_saves(attack, defense)
    return {
        "saves": [
            {
                "save": save,
                "distribution": dist.to_floats(),
                "expected": expected_value(dist),
                "kill": kill_probability(dist, defense.wounds),
            }
            for save, dist in by_save.items()
        ]
    }


@app.post("/api/compare")
def compare(body: CompareRequest):
    s1 = body.situation1.to_situation()
    s2 = body.situation2.to_situation()
    logger.info("Comparing %s vs %s against %s vs %s",
                s1.attack.name, s1.defense.name, s2.attack.name, s2.defense.name)
    return comparison_to_json(compare_situations(s1, s2))
