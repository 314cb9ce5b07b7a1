# storefront/main.py
import logging

from fastapi import FastAPI

from .catalog import catalog_router
from .config import get_settings

settings = get_settings()
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Catalogue Fatima Mobiliário",
    description=(
        "API du catalogue produits : recherche, filtres par catégorie, "
        "prix et statut, tri et pagination."
    ),
    version="1.0.0",
)

app.include_router(catalog_router)


# 🔹 Route de base pour tester rapidement
@app.get("/")
def health_check():
    return {"status": "ok", "message": "Catalogue API live"}
