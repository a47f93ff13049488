"""Demo household and recipe pool, used while the store holds none."""

from ..domain import FamilyMember, IngredientSpec, RecipeCandidate

DEFAULT_FAMILY = (
    FamilyMember(id="demo-sandy", name="Sandy", age_group="adult"),
    FamilyMember(id="demo-rene", name="René", age_group="adult"),
    FamilyMember(id="demo-tery", name="Tery", age_group="teenager"),
    FamilyMember(id="demo-warys", name="Warys", age_group="teenager"),
    FamilyMember(id="demo-kelly", name="Kelly", age_group="teenager"),
    FamilyMember(id="demo-sophy", name="Sophy", age_group="toddler"),
)


def _ingredients(*rows):
    return [IngredientSpec(name=name, quantity=qty, unit=unit) for name, qty, unit in rows]


FALLBACK_RECIPES = (
    RecipeCandidate(
        id="demo-1",
        title="Pâtes sauce tomate",
        meal_type="lunch",
        description="Pâtes complètes avec sauce tomate maison",
        ingredients=_ingredients(("Pâtes", 600, "g"), ("Tomates", 500, "g"), ("Oignon", 1, "pcs")),
        suitable_for_toddler=True,
        prep_time_minutes=25,
    ),
    RecipeCandidate(
        id="demo-2",
        title="Poulet rôti & légumes",
        meal_type="dinner",
        description="Poulet rôti au four avec légumes de saison",
        ingredients=_ingredients(("Poulet", 1.2, "kg"), ("Carottes", 400, "g"), ("Pommes de terre", 600, "g")),
        suitable_for_toddler=True,
        prep_time_minutes=75,
    ),
    RecipeCandidate(
        id="demo-3",
        title="Riz au thon",
        meal_type="lunch",
        description="Bol de riz complet, thon et petits légumes",
        ingredients=_ingredients(("Riz", 400, "g"), ("Thon en boîte", 2, "pcs"), ("Carottes", 200, "g")),
        suitable_for_toddler=True,
        prep_time_minutes=30,
    ),
    RecipeCandidate(
        id="demo-4",
        title="Œufs brouillés & pain",
        meal_type="breakfast",
        description="Œufs brouillés moelleux avec tartines beurrées",
        ingredients=_ingredients(("Œufs", 8, "pcs"), ("Lait", 0.2, "L"), ("Pain", 1, "pcs")),
        suitable_for_toddler=True,
        prep_time_minutes=15,
    ),
    RecipeCandidate(
        id="demo-5",
        title="Salade composée",
        meal_type="dinner",
        description="Salade fraîche avec thon, tomates, œufs durs",
        ingredients=_ingredients(
            ("Salade", 1, "pcs"), ("Thon en boîte", 2, "pcs"), ("Tomates", 3, "pcs"), ("Œufs", 4, "pcs")
        ),
        suitable_for_toddler=False,
        prep_time_minutes=20,
    ),
)
