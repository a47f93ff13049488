"""Recipe templates API router.

Endpoints:
- GET /api/recipe-templates - List the recipe pool used by the planner
- POST /api/recipe-templates - Add a recipe to the pool
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from .. import models, schemas
from ..core.text import normalize_meal_type
from ..deps import get_db

router = APIRouter()


@router.get("/recipe-templates", response_model=list[schemas.RecipeTemplateOut])
def list_recipe_templates(db: Session = Depends(get_db)):
    return db.scalars(
        select(models.RecipeTemplate).order_by(models.RecipeTemplate.meal_type, models.RecipeTemplate.title)
    ).all()


@router.post("/recipe-templates", response_model=schemas.RecipeTemplateOut, status_code=status.HTTP_201_CREATED)
def create_recipe_template(recipe_in: schemas.RecipeTemplateCreate, db: Session = Depends(get_db)):
    data = recipe_in.model_dump()
    data["meal_type"] = normalize_meal_type(recipe_in.meal_type)
    data["ingredients"] = [i.model_dump(exclude_none=True) for i in recipe_in.ingredients]
    recipe = models.RecipeTemplate(**data)
    db.add(recipe)
    db.commit()
    db.refresh(recipe)
    return recipe
