from __future__ import annotations

from src.app.domain.models import Ingredient, Instruction, Nutrition, Recipe

RECIPE_JSON_SHAPE = """{
  "title": "Recipe Name",
  "description": "Brief description",
  "servings": 4,
  "prep_time_minutes": 15,
  "cook_time_minutes": 30,
  "total_time_minutes": 45,
  "ingredients": [
    {
      "item": "ingredient name",
      "amount": 2,
      "unit": "cups"
    }
  ],
  "instructions": [
    {
      "step": 1,
      "description": "Step description"
    }
  ],
  "nutrition": {
    "calories": 300,
    "protein": "10g",
    "carbs": "45g",
    "fat": "12g"
  },
  "tags": ["vegetarian", "easy", "quick"],
  "difficulty": "easy"
}"""

RECIPE_SYSTEM_PROMPT = (
    "You are a recipe generation assistant that always responds in JSON format. "
    "Respond with a single valid JSON object and nothing else, using exactly this structure:\n"
    f"{RECIPE_JSON_SHAPE}"
)

MODIFICATION_TEMPLATE = """Modify the following recipe according to these requirements and respond in JSON format:
Modification Type: {modification_type}
Additional Notes: {notes}

IMPORTANT: You MUST create a new title that reflects the modifications made to the recipe. For example, if making a chocolate cake larger and adding nuts, the new title should be something like "Large Chocolate Nut Mug Cake" or "Family-Sized Chocolate Mug Cake with Nuts".

Original Recipe:
Title: {title}
Description: {description}
Servings: {servings}
Prep Time: {prep} minutes
Cook Time: {cook} minutes
Total Time: {total} minutes
Difficulty: {difficulty}

Ingredients:
{ingredients}

Instructions:
{instructions}

Nutrition:
{nutrition}

Tags: {tags}

The "title" of your answer must differ from "{title}"."""


def build_generation_prompt(query: str) -> str:
    return f"Generate a recipe in JSON format for: {query.strip()}"


def format_ingredients(ingredients: list[Ingredient]) -> str:
    return "\n".join(
        f"- {ingredient.item}: {ingredient.amount} {ingredient.unit}".rstrip()
        for ingredient in ingredients
    )


def format_instructions(instructions: list[Instruction]) -> str:
    return "\n".join(f"{instruction.step}. {instruction.description}" for instruction in instructions)


def format_nutrition(nutrition: Nutrition) -> str:
    return (
        f"Calories: {nutrition.calories}\n"
        f"Protein: {nutrition.protein}\n"
        f"Carbs: {nutrition.carbs}\n"
        f"Fat: {nutrition.fat}"
    )


def build_modification_prompt(recipe: Recipe, modification_type: str, notes: str = "") -> str:
    return MODIFICATION_TEMPLATE.format(
        modification_type=modification_type.strip(),
        notes=notes.strip() or "None",
        title=recipe.title,
        description=recipe.description,
        servings=recipe.servings,
        prep=recipe.prep_time_minutes,
        cook=recipe.cook_time_minutes,
        total=recipe.total_time_minutes,
        difficulty=recipe.difficulty,
        ingredients=format_ingredients(recipe.ingredients),
        instructions=format_instructions(recipe.instructions),
        nutrition=format_nutrition(recipe.nutrition),
        tags=", ".join(recipe.tags),
    )
