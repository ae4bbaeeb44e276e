# src/focusmate/templates/catalog.py

from __future__ import annotations

"""
Preloaded task templates.

Curated everyday routines with realistic step times. The catalog is
read-only; users edit clones of these (see template_store).
"""

from dataclasses import dataclass
from enum import StrEnum


class Category(StrEnum):
    HOUSEHOLD = "household"
    PERSONAL = "personal"
    HEALTH = "health"
    WORK = "work"
    SOCIAL = "social"


class Difficulty(StrEnum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


@dataclass(frozen=True, slots=True)
class TemplateStep:
    id: str
    description: str
    estimated_minutes: int
    optional: bool = False


@dataclass(frozen=True, slots=True)
class Template:
    id: str
    title: str
    category: Category
    difficulty: Difficulty
    estimated_total_minutes: int
    description: str
    steps: tuple[TemplateStep, ...]
    tips: tuple[str, ...] = ()
    accessibility_notes: str | None = None

    def matches(self, query: str) -> bool:
        q = (query or "").lower()
        return (
            q in self.title.lower()
            or q in self.description.lower()
            or any(q in s.description.lower() for s in self.steps)
        )


def _template(
    id: str,
    title: str,
    category: Category,
    difficulty: Difficulty,
    total: int,
    description: str,
    steps: list[tuple[str, int, bool]],
    *,
    tips: tuple[str, ...] = (),
    notes: str | None = None,
) -> Template:
    return Template(
        id=id,
        title=title,
        category=category,
        difficulty=difficulty,
        estimated_total_minutes=total,
        description=description,
        steps=tuple(
            TemplateStep(id=str(i), description=d, estimated_minutes=m, optional=o)
            for i, (d, m, o) in enumerate(steps, start=1)
        ),
        tips=tips,
        accessibility_notes=notes,
    )


PRELOADED_TEMPLATES: tuple[Template, ...] = (
    # ---- household ----
    _template(
        "household_clean_kitchen",
        "Clean Kitchen",
        Category.HOUSEHOLD,
        Difficulty.MEDIUM,
        30,
        "Daily kitchen cleanup after meals",
        [
            ("Load dirty dishes into dishwasher", 5, False),
            ("Wipe down dining table", 3, False),
            ("Rinse sink and wipe basin", 2, False),
            ("Wipe down countertops", 5, False),
            ("Empty small trash can if full", 2, True),
            ("Store leftovers in containers", 5, True),
            ("Start dishwasher if full", 2, False),
        ],
        tips=("Do right after eating to prevent food from drying", "Play music or a podcast"),
        notes="Clear sink and countertop clutter beforehand. Use bright lighting.",
    ),
    _template(
        "household_clean_bedroom",
        "Tidy Bedroom",
        Category.HOUSEHOLD,
        Difficulty.EASY,
        20,
        "Quick bedroom cleanup",
        [
            ("Make bed - straighten sheets and pillows", 3, False),
            ("Pick up clothes and put in laundry basket", 5, False),
            ("Clear bedside table (glasses, water, books)", 2, False),
            ("Hang up coats or put in closet", 3, True),
            ("Empty small trash can", 1, True),
            ("Open windows for fresh air", 1, True),
        ],
    ),
    _template(
        "household_laundry_start",
        "Start Laundry",
        Category.HOUSEHOLD,
        Difficulty.EASY,
        15,
        "Sort and load laundry into washing machine",
        [
            ("Gather all dirty laundry from bedroom/bathroom", 5, False),
            ("Sort by color (darks, lights, delicates)", 3, False),
            ("Check pockets for forgotten items", 2, False),
            ("Load washer (don't overfill)", 2, False),
            ("Add detergent", 1, False),
            ("Select cycle and start machine", 1, False),
        ],
        tips=("Sort darks and lights", "Check pockets for items", "Don't overload the machine"),
    ),
    _template(
        "household_mow_lawn",
        "Mow the Lawn",
        Category.HOUSEHOLD,
        Difficulty.HARD,
        60,
        "Mow the front and/or back lawn",
        [
            ("Gather tools: mower, gas or extension cord, safety gear", 10, False),
            ("Remove debris: toys, stones, branches from lawn", 10, False),
            ("Check or fill with gas/oil if needed", 5, False),
            ("Start lawn mower", 2, False),
            ("Mow lawn in straight lines", 20, False),
            ("Stop mower, let cool down", 5, False),
            ("Clean mower and store in shed/garage", 5, False),
            ("Clean up any grass clippings", 3, True),
        ],
        tips=("Wear protective eyewear", "Mow when grass is dry", "Take breaks as needed"),
        notes="Consider getting help on very hot days or for large lawns. Wear hearing protection.",
    ),
    _template(
        "household_vacuum",
        "Vacuum Floors",
        Category.HOUSEHOLD,
        Difficulty.EASY,
        25,
        "Vacuum carpets and rugs in main living areas",
        [
            ("Pick up small items from floor (toys, clothes)", 5, False),
            ("Move light furniture if needed", 3, True),
            ("Get vacuum cleaner and check cord/cordless charge", 2, False),
            ("Vacuum main living area in straight lines", 8, False),
            ("Vacuum hallways and doorway edges", 3, False),
            ("Use attachment for corners and under furniture", 2, True),
            ("Empty canister or change bag", 1, False),
            ("Store vacuum away", 1, False),
        ],
        tips=("Move small furniture first", "Empty canister when half full"),
    ),
    # ---- personal ----
    _template(
        "personal_morning_routine",
        "Morning Routine",
        Category.PERSONAL,
        Difficulty.EASY,
        45,
        "Start your day right with a consistent morning routine",
        [
            ("Wake up - turn off alarm and get out of bed", 2, False),
            ("Brush teeth and rinse", 3, False),
            ("Wash face with water and cleanser", 2, False),
            ("Get dressed (outfits ready from night before)", 5, False),
            ("Drink a glass of water - hydrate", 1, False),
            ("Eat breakfast or prepare breakfast to go", 15, False),
            ("Take daily medications if any", 2, True),
            ("Gather bag, keys, phone, wallet before leaving", 3, True),
            ("Lock door and head out", 2, True),
        ],
        tips=("Prepare clothes night before", "Avoid checking phone first thing"),
        notes="Consider a checklist by the bedside. Use bright lighting in bathroom.",
    ),
    _template(
        "personal_pack_bag",
        "Pack Work/School Bag",
        Category.PERSONAL,
        Difficulty.EASY,
        15,
        "Pack your bag for the next day",
        [
            ("Get bag and check contents", 2, False),
            ("Add laptop/tablet", 1, True),
            ("Add necessary papers or books", 3, True),
            ("Add charging cables", 1, False),
            ("Add water bottle and snacks", 2, True),
            ("Double-check list against daily needs", 2, False),
            ("Place bag by door", 1, False),
        ],
        notes="Create a laminated checklist to review each time.",
    ),
    # ---- health ----
    _template(
        "health_morning_meds",
        "Take Morning Medications",
        Category.HEALTH,
        Difficulty.EASY,
        10,
        "Take prescribed morning medications",
        [
            ("Get pill organizer", 1, False),
            ("Get a glass of water", 1, False),
            ("Open today's compartments", 2, False),
            ("Take each medication with water", 3, False),
            ("Close compartments", 1, False),
            ("Put pill organizer back on counter", 1, False),
            ("Check off on medication tracker if using", 1, True),
        ],
        tips=("Use a weekly pill organizer", "Set daily reminder alarm"),
        notes="Critical for patients with memory issues. Use caregiver verification if possible.",
    ),
    _template(
        "health_grocery_shop",
        "Grocery Shopping",
        Category.HEALTH,
        Difficulty.MEDIUM,
        60,
        "Go grocery shopping for weekly needs",
        [
            ("Check fridge and pantry for what's needed", 10, False),
            ("Make shopping list (or use existing list)", 5, False),
            ("Get reusable bags and keys/wallet", 3, False),
            ("Drive or walk to store", 10, False),
            ("Go through store following list", 20, False),
            ("Check out and pay", 7, False),
            ("Load bags and return home", 10, False),
            ("Unpack groceries into kitchen", 10, False),
        ],
        tips=("Always bring a list", "Shop at less busy times"),
    ),
    # ---- work ----
    _template(
        "work_study_session",
        "Study Session",
        Category.WORK,
        Difficulty.MEDIUM,
        60,
        "Focused study or work block",
        [
            ("Choose what to study/work on", 2, False),
            ("Clear workspace of distractions", 3, False),
            ("Get materials ready (books, notes, computer)", 5, False),
            ("Focus block 1: Study/work for 25 minutes", 25, False),
            ("Break: Stretch, move, get water", 5, False),
            ("Focus block 2: Continue work for 25 minutes", 25, False),
            ("Clean up materials and workspace", 5, True),
            ("Note what was accomplished", 5, True),
        ],
        tips=("Remove distractions - put phone away", "Set specific goal for session"),
        notes="Use fidget or focus tools if helpful. Take longer breaks as needed.",
    ),
    # ---- social ----
    _template(
        "social_call_family",
        "Call Family Member",
        Category.SOCIAL,
        Difficulty.EASY,
        30,
        "Make a call to stay connected with family",
        [
            ("Remember: who to call, what to discuss", 2, False),
            ("Find phone and ensure charged", 1, False),
            ("Find a quiet place with good reception", 2, False),
            ("Dial and make the call", 1, False),
            ("Chat - listen and share", 20, False),
            ("Say goodbye and end call", 2, False),
            ("Note next time to call if planned", 1, True),
        ],
        notes="Consider video calls for better connection for dementia patients.",
    ),
    _template(
        "social_pay_bills",
        "Pay Bills",
        Category.SOCIAL,
        Difficulty.MEDIUM,
        30,
        "Review and pay monthly bills",
        [
            ("Gather all bills from mailbox or email", 5, False),
            ("Review each bill for correct charges", 5, False),
            ("Log into online banking or bill payment sites", 3, False),
            ("Pay bills that are due now", 10, False),
            ("Schedule payments for upcoming bills", 5, False),
            ("Confirm all payments went through", 2, False),
        ],
        tips=("Set up autopay when possible", "Keep bills in one place"),
    ),
)

_BY_ID: dict[str, Template] = {t.id: t for t in PRELOADED_TEMPLATES}


def get_template_by_id(template_id: str) -> Template | None:
    return _BY_ID.get(template_id)


def templates_by_category(category: Category | str) -> list[Template]:
    return [t for t in PRELOADED_TEMPLATES if t.category == category]


def templates_by_difficulty(difficulty: Difficulty | str) -> list[Template]:
    return [t for t in PRELOADED_TEMPLATES if t.difficulty == difficulty]


def search_templates(query: str) -> list[Template]:
    """Templates whose title, description or any step mentions query (case-insensitive)."""
    return [t for t in PRELOADED_TEMPLATES if t.matches(query)]
