from __future__ import annotations

from typing import List

from .models import FoodSubcategory, MenuItem, ProductCategory

_IMAGE = "https://picsum.photos/400/300?random={}"

# (id, name, price, category, sub_category, description)
SEED_MENU = [
    ("prod-beer-draft", "生ビール", 600, ProductCategory.DRINK_ALCOHOL, None, "キンキンに冷えた一杯"),
    ("prod-beer-bottle", "瓶ビール", 700, ProductCategory.DRINK_ALCOHOL, None, "中瓶 / グラスの数をお選びください"),
    ("prod-highball", "角ハイボール", 500, ProductCategory.DRINK_ALCOHOL, None, None),
    ("prod-lemon-sour", "自家製レモンサワー", 550, ProductCategory.DRINK_ALCOHOL, None, None),
    ("prod-shochu-umi", "芋焼酎 海", 600, ProductCategory.DRINK_ALCOHOL, None, "割り方をお選びください"),
    ("prod-shochu-kura", "蔵の師魂", 650, ProductCategory.DRINK_ALCOHOL, None, "割り方をお選びください"),
    ("prod-sake-tatsuriki", "龍力 特別純米", 800, ProductCategory.DRINK_ALCOHOL, None, None),
    ("prod-umeshu", "梅酒", 550, ProductCategory.DRINK_ALCOHOL, None, None),
    ("prod-oolong", "烏龍茶", 350, ProductCategory.DRINK_SOFT, None, None),
    ("prod-ginger-ale", "ジンジャーエール", 350, ProductCategory.DRINK_SOFT, None, None),
    ("prod-edamame", "枝豆", 400, ProductCategory.FOOD, FoodSubcategory.APPETIZER, None),
    ("prod-potato-salad", "いぶりがっこポテサラ", 550, ProductCategory.FOOD, FoodSubcategory.SALAD, None),
    ("prod-karaage", "鶏の唐揚げ", 680, ProductCategory.FOOD, FoodSubcategory.MAIN, "特製ダレに漬け込んだ人気メニュー"),
    ("prod-dashimaki", "だし巻き玉子", 580, ProductCategory.FOOD, FoodSubcategory.SIDE, None),
    ("prod-onigiri", "焼きおにぎり", 380, ProductCategory.FOOD, None, None),
]


def seed_menu_items() -> List[MenuItem]:
    return [
        MenuItem(
            id=item_id,
            name=name,
            price=price,
            category=category,
            sub_category=sub_category,
            description=description,
            image_url=_IMAGE.format(index),
        )
        for index, (item_id, name, price, category, sub_category, description) in enumerate(SEED_MENU, start=1)
    ]
