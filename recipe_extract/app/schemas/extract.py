from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

CategoryName = Literal["meat", "produce", "dairy", "pantry", "spices", "condiments", "bread", "other"]


class UrlRequest(BaseModel):
    url: str


class IngredientItem(BaseModel):
    name: str
    quantity: float = Field(1, ge=0)
    unit: str = "item"
    category: CategoryName = "other"


class DietConversionRequest(BaseModel):
    dietType: Literal["vegetarian", "vegan", "gluten-free"]
    title: str
    ingredients: list[IngredientItem] = Field(default_factory=list)
    instructions: list[str] = Field(default_factory=list)
    dietaryTags: list[str] = Field(default_factory=list)


class CookbookPage(BaseModel):
    title: str = ""
    ingredients: list[IngredientItem] = Field(default_factory=list)
    instructions: list[str] = Field(default_factory=list)
    servings: int = Field(4, ge=0)
    prepTime: int = Field(0, ge=0)
    cookTime: int = Field(0, ge=0)
    pageNumber: Optional[str] = None


class MergePagesRequest(BaseModel):
    pages: list[CookbookPage] = Field(min_length=1)
