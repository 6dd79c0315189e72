from __future__ import annotations

from photo_pairing.schema import PackagingHint

# Storefront brand -> contract manufacturer printed on some backs.
DISTRIBUTORS = {
    "rkmd": "vitaminne",
    "jocko": "origin labs",
    "ryse": "nutrablend",
}

PRODUCT_PROFILES = [
    {
        "brand": "rkmd",
        "products": ["glutathione", "complex", "capsules"],
        "category": "Health & Beauty > Vitamins & Lifestyle Supplements > Vitamins & Minerals",
        "packaging": PackagingHint.BOTTLE,
        "sizes": ["60ct", "120ct"],
        "colors": ["white", "light-blue"],
        "back_text": "Supplement Facts. Serving size 2 capsules. UPC 860008{sku}",
    },
    {
        "brand": "jocko",
        "products": ["molk", "protein", "powder"],
        "category": "Health & Beauty > Vitamins & Lifestyle Supplements > Protein Shakes",
        "packaging": PackagingHint.POUCH,
        "sizes": ["907g", "1814g"],
        "colors": ["black", "dark-green"],
        "back_text": "Nutrition facts per scoop. Barcode {sku}. Distributed by Jocko Fuel",
    },
    {
        "brand": "ryse",
        "products": ["loaded", "pre", "workout"],
        "category": "Health & Beauty > Vitamins & Lifestyle Supplements > Sports Supplements",
        "packaging": PackagingHint.JAR,
        "sizes": ["390g", "438g"],
        "colors": ["red", "deep-purple"],
        "back_text": "Supplement Facts. Mix one scoop with water. GTIN {sku}",
    },
    {
        "brand": "evereden",
        "products": ["kids", "face", "oil"],
        "category": "Health & Beauty > Skin Care > Face Oils",
        "packaging": PackagingHint.DROPPER_BOTTLE,
        "sizes": ["30ml"],
        "colors": ["pink", "pale-pink"],
        "back_text": "Ingredients: squalane, jojoba seed oil. Avoid contact with eyes. 12M",
    },
    {
        "brand": "olaplex",
        "products": ["bond", "maintenance", "shampoo"],
        "category": "Health & Beauty > Hair Care & Styling > Shampoos & Conditioners",
        "packaging": PackagingHint.BOTTLE,
        "sizes": ["250ml", "1000ml"],
        "colors": ["white", "bright-white"],
        "back_text": "Apply to wet hair, lather and rinse. Ingredients: water, sodium lauroyl",
    },
    {
        "brand": "mielle",
        "products": ["rosemary", "mint", "scalp", "oil"],
        "category": "Health & Beauty > Hair Care & Styling > Hair Oils",
        "packaging": PackagingHint.DROPPER_BOTTLE,
        "sizes": ["59ml"],
        "colors": ["green", "dark-green"],
        "back_text": "Directions: apply a few drops to scalp and hair. Distributed by Mielle Organics",
    },
    {
        "brand": "cerave",
        "products": ["moisturizing", "cream"],
        "category": "Health & Beauty > Skin Care > Lotions & Moisturizers",
        "packaging": PackagingHint.JAR,
        "sizes": ["453g", "539g"],
        "colors": ["white", "blue"],
        "back_text": "Ingredients: aqua, glycerin, ceramide np. Avoid contact with eyes",
    },
    {
        "brand": "burts",
        "products": ["lip", "balm", "beeswax"],
        "category": "Health & Beauty > Makeup > Lip Balms",
        "packaging": PackagingHint.TUBE,
        "sizes": ["4.25g"],
        "colors": ["yellow", "orange"],
        "back_text": "Ingredients: beeswax, coconut oil. UPC 792850{sku}",
    },
]

VARIANTS = ["original", "vanilla", "chocolate", "unscented", "citrus", "berry"]
