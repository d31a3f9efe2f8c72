"""
Client Ailments Catalog

Selectable health conditions grouped by category. Each ailment carries the
nutritional support used to tailor a generated protocol. Condition codes are
the ``id`` values below; the wizard stores them in ``selected_conditions``.
"""

from typing import Dict, List, Any, Optional, Iterable


CATEGORIES = [
    ("digestive", "Digestive Issues", "Problems related to digestion, gut health, and gastrointestinal function"),
    ("energy_metabolism", "Energy & Metabolism", "Issues with energy levels, metabolism, and blood sugar regulation"),
    ("inflammatory", "Inflammatory Conditions", "Chronic inflammation, joint pain, and inflammatory responses"),
    ("mental_health", "Mental Health", "Mood, cognitive function, and mental wellness concerns"),
    ("hormonal", "Hormonal Issues", "Hormonal imbalances and endocrine system concerns"),
    ("cardiovascular", "Cardiovascular", "Heart health, blood pressure, and circulation issues"),
    ("detox_cleansing", "Detox & Cleansing", "Liver function, detoxification, and cleansing support"),
    ("immune_system", "Immune System", "Immune function, allergies, and infection resistance"),
    ("skin_beauty", "Skin & Beauty", "Skin health, appearance, and beauty-related concerns"),
]


class AilmentCatalog:
    """Lookup, search and nutritional-focus merging over the ailment list"""

    def __init__(self):
        self.ailments = self._load_ailments()
        self._by_id = {a["id"]: a for a in self.ailments}

    def get(self, ailment_id: str) -> Optional[Dict[str, Any]]:
        return self._by_id.get(ailment_id)

    def exists(self, ailment_id: str) -> bool:
        return ailment_id in self._by_id

    def unknown_codes(self, codes: Iterable[str]) -> List[str]:
        """Codes that are not in the catalog, sorted"""
        return sorted(c for c in set(codes) if c not in self._by_id)

    def by_category(self, category: str) -> List[Dict[str, Any]]:
        return [a for a in self.ailments if a["category"] == category]

    def categories(self) -> List[Dict[str, Any]]:
        return [
            {
                "id": cid,
                "name": name,
                "description": description,
                "ailments": [a["id"] for a in self.by_category(cid)],
            }
            for cid, name, description in CATEGORIES
        ]

    def search(self, query: str) -> List[Dict[str, Any]]:
        q = query.lower().strip()
        if not q:
            return []
        return [
            a for a in self.ailments
            if q in a["name"].lower()
            or q in a["description"].lower()
            or any(q in s.lower() for s in a["symptoms"])
        ]

    def nutritional_focus(self, ailment_ids: Iterable[str]) -> Dict[str, List[str]]:
        """Merge nutritional support for the given ailments.

        Entries are deduplicated keeping the order of first appearance; ids
        are visited in sorted order so the result does not depend on how the
        caller built the collection.
        """
        combined = {
            "beneficialFoods": [],
            "avoidFoods": [],
            "keyNutrients": [],
            "focus": [],
        }
        for ailment_id in sorted(set(ailment_ids)):
            ailment = self._by_id.get(ailment_id)
            if not ailment:
                continue
            support = ailment["support"]
            for key in combined:
                for item in support[key]:
                    if item not in combined[key]:
                        combined[key].append(item)
        return combined

    def _load_ailments(self) -> List[Dict[str, Any]]:
        return [
            # Digestive
            self._ailment(
                "bloating", "Bloating", "digestive", "mild",
                "Feeling of fullness and swelling in the abdominal area",
                ["Abdominal distension", "Feeling of fullness", "Gas", "Discomfort"],
                beneficial=["Ginger", "Peppermint", "Fennel", "Papaya", "Probiotics", "Bone broth"],
                avoid=["Carbonated drinks", "Beans", "Dairy", "High-sodium foods"],
                nutrients=["Digestive enzymes", "Probiotics", "Potassium"],
                focus=["Anti-inflammatory foods", "Easy-to-digest proteins", "Herbal teas"],
            ),
            self._ailment(
                "ibs", "Irritable Bowel Syndrome (IBS)", "digestive", "moderate",
                "Chronic condition affecting the large intestine with cramping, bloating, and bowel changes",
                ["Cramping", "Bloating", "Gas", "Diarrhea or constipation"],
                beneficial=["Low-FODMAP foods", "Soluble fiber", "Bone broth", "Cooked vegetables"],
                avoid=["High-FODMAP foods", "Processed foods", "Caffeine", "Alcohol"],
                nutrients=["Soluble fiber", "Probiotics", "L-glutamine", "Omega-3 fatty acids"],
                focus=["Low-FODMAP meal plans", "Gut-healing foods", "Anti-inflammatory diet"],
                disclaimer="Consult healthcare provider for proper IBS diagnosis and management",
            ),
            self._ailment(
                "constipation", "Constipation", "digestive", "mild",
                "Infrequent or difficult bowel movements",
                ["Infrequent stools", "Straining", "Hard stools"],
                beneficial=["High-fiber foods", "Prunes", "Flaxseeds", "Chia seeds", "Leafy greens"],
                avoid=["Processed foods", "Low-fiber foods"],
                nutrients=["Insoluble fiber", "Magnesium", "Vitamin C"],
                focus=["High-fiber meals", "Adequate hydration", "Regular meal timing"],
            ),
            self._ailment(
                "acid_reflux", "Acid Reflux / GERD", "digestive", "moderate",
                "Stomach acid flowing back into the esophagus",
                ["Heartburn", "Regurgitation", "Chest discomfort"],
                beneficial=["Oatmeal", "Bananas", "Melons", "Fennel", "Lean proteins"],
                avoid=["Citrus fruits", "Tomatoes", "Spicy foods", "Caffeine", "Alcohol", "Fried foods"],
                nutrients=["Alkalizing minerals", "Complex carbohydrates", "B-vitamins"],
                focus=["Small frequent meals", "Low-acid options", "Easily digestible foods"],
            ),
            # Energy & metabolism
            self._ailment(
                "chronic_fatigue", "Chronic Fatigue", "energy_metabolism", "moderate",
                "Persistent tiredness not relieved by rest",
                ["Exhaustion", "Poor concentration", "Unrefreshing sleep"],
                beneficial=["Iron-rich foods", "Complex carbohydrates", "Lean proteins", "Dark leafy greens"],
                avoid=["Refined sugars", "Processed foods", "Excessive caffeine", "Alcohol"],
                nutrients=["Iron", "B-vitamins", "Vitamin D", "Magnesium", "Coenzyme Q10"],
                focus=["Energy-sustaining foods", "Blood sugar stabilizing", "Mitochondrial support"],
            ),
            self._ailment(
                "insulin_resistance", "Insulin Resistance", "energy_metabolism", "moderate",
                "Reduced cellular response to insulin",
                ["Sugar cravings", "Weight gain around the waist", "Energy crashes"],
                beneficial=["Low-glycemic foods", "Fiber-rich vegetables", "Lean proteins", "Cinnamon"],
                avoid=["Refined carbohydrates", "Sugary foods", "Processed foods"],
                nutrients=["Chromium", "Magnesium", "Fiber", "Alpha-lipoic acid"],
                focus=["Low-glycemic index meals", "Protein with each meal", "Portion control"],
            ),
            self._ailment(
                "diabetes", "Type 2 Diabetes", "energy_metabolism", "severe",
                "Chronic condition affecting blood sugar regulation",
                ["High blood sugar", "Increased thirst", "Fatigue"],
                beneficial=["Low-glycemic vegetables", "Lean proteins", "Whole grains", "Fiber-rich foods"],
                avoid=["Refined sugars", "High-glycemic foods", "Sugary drinks"],
                nutrients=["Chromium", "Magnesium", "Alpha-lipoic acid", "Fiber"],
                focus=["Blood sugar control", "Low-glycemic meals", "Consistent meal timing"],
                disclaimer="Work with your physician before changing diabetes management",
            ),
            # Inflammatory
            self._ailment(
                "joint_pain", "Joint Pain", "inflammatory", "moderate",
                "Discomfort, aches and soreness in joints",
                ["Stiffness", "Swelling", "Reduced range of motion"],
                beneficial=["Fatty fish", "Turmeric", "Ginger", "Berries", "Olive oil"],
                avoid=["Processed foods", "Sugar", "Trans fats"],
                nutrients=["Omega-3 fatty acids", "Curcumin", "Vitamin D", "Vitamin C"],
                focus=["Anti-inflammatory diet", "Mediterranean-style meals"],
            ),
            self._ailment(
                "chronic_inflammation", "Chronic Inflammation", "inflammatory", "moderate",
                "Long-term low-grade inflammatory response",
                ["Fatigue", "Body aches", "Digestive issues"],
                beneficial=["Colorful vegetables", "Berries", "Fatty fish", "Nuts", "Olive oil"],
                avoid=["Processed foods", "Sugar", "Trans fats", "Refined carbs"],
                nutrients=["Omega-3 fatty acids", "Polyphenols", "Vitamin E", "Selenium"],
                focus=["Mediterranean diet", "Whole foods", "Anti-inflammatory spices"],
            ),
            # Mental health
            self._ailment(
                "anxiety", "Anxiety", "mental_health", "moderate",
                "Persistent worry, nervousness or unease",
                ["Restlessness", "Racing thoughts", "Poor sleep"],
                beneficial=["Magnesium-rich foods", "Fermented foods", "Green tea", "Omega-3 rich fish"],
                avoid=["Caffeine (excess)", "Alcohol", "Refined sugars"],
                nutrients=["Magnesium", "B-vitamins", "Omega-3s", "L-theanine"],
                focus=["Mood-stabilizing foods", "Gut-brain axis support", "Regular meal timing"],
            ),
            self._ailment(
                "brain_fog", "Brain Fog", "mental_health", "mild",
                "Reduced mental clarity and focus",
                ["Forgetfulness", "Poor concentration", "Mental fatigue"],
                beneficial=["Blueberries", "Fatty fish", "Nuts", "Green tea", "Avocados"],
                avoid=["Processed foods", "Excess sugar", "Alcohol"],
                nutrients=["Omega-3s", "B-vitamins", "Choline"],
                focus=["Cognitive function support", "Blood sugar stability"],
            ),
            # Hormonal
            self._ailment(
                "thyroid_issues", "Thyroid Issues", "hormonal", "moderate",
                "Under- or over-active thyroid function",
                ["Weight changes", "Fatigue", "Temperature sensitivity"],
                beneficial=["Iodine-rich foods", "Selenium-rich foods", "Zinc-rich foods"],
                avoid=["Goitrogenic foods (raw)", "Soy (if sensitive)"],
                nutrients=["Iodine", "Selenium", "Zinc", "Tyrosine"],
                focus=["Thyroid-supporting nutrients", "Metabolic support"],
            ),
            self._ailment(
                "menopause", "Menopause Symptoms", "hormonal", "moderate",
                "Symptoms during the menopausal transition",
                ["Hot flashes", "Night sweats", "Mood changes"],
                beneficial=["Phytoestrogen-rich foods", "Calcium-rich foods", "Whole grains"],
                avoid=["Spicy foods", "Caffeine", "Alcohol"],
                nutrients=["Phytoestrogens", "Calcium", "Vitamin D"],
                focus=["Hormone-supporting foods", "Bone health"],
            ),
            # Cardiovascular
            self._ailment(
                "high_blood_pressure", "High Blood Pressure", "cardiovascular", "moderate",
                "Elevated pressure in the arteries",
                ["Headaches", "Often no symptoms"],
                beneficial=["Potassium-rich foods", "Garlic", "Beets", "Leafy greens", "Berries"],
                avoid=["High sodium foods", "Processed foods", "Excess alcohol"],
                nutrients=["Potassium", "Magnesium", "Calcium", "Nitrates"],
                focus=["DASH diet principles", "Low sodium", "Heart-healthy foods"],
            ),
            self._ailment(
                "high_cholesterol", "High Cholesterol", "cardiovascular", "moderate",
                "Elevated blood lipid levels",
                ["Often no symptoms"],
                beneficial=["Soluble fiber foods", "Nuts", "Olive oil", "Fatty fish", "Garlic"],
                avoid=["Saturated fats", "Trans fats", "Fried foods"],
                nutrients=["Soluble fiber", "Plant sterols", "Omega-3s"],
                focus=["Cholesterol-lowering foods", "Fiber-rich meals"],
            ),
            # Detox
            self._ailment(
                "liver_congestion", "Liver Congestion", "detox_cleansing", "mild",
                "Sluggish liver function",
                ["Fatigue", "Bloating", "Skin issues"],
                beneficial=["Cruciferous vegetables", "Beets", "Artichokes", "Turmeric"],
                avoid=["Alcohol", "Processed foods"],
                nutrients=["Sulfur compounds", "Choline", "Milk thistle"],
                focus=["Liver-supporting foods", "Gentle cleansing"],
            ),
            self._ailment(
                "parasites", "Suspected Parasites", "detox_cleansing", "moderate",
                "Digestive symptoms associated with intestinal parasites",
                ["Abdominal pain", "Irregular digestion", "Fatigue"],
                beneficial=["Garlic", "Pumpkin seeds", "Papaya seeds", "Oregano", "Cloves"],
                avoid=["Refined sugars", "Undercooked meat", "Alcohol"],
                nutrients=["Zinc", "Fiber", "Probiotics"],
                focus=["Anti-parasitic foods", "Gut lining support"],
                disclaimer="Confirm parasitic infection with a healthcare provider before a cleanse",
            ),
            # Immune
            self._ailment(
                "frequent_infections", "Frequent Infections", "immune_system", "moderate",
                "Recurring colds or infections",
                ["Frequent colds", "Slow recovery"],
                beneficial=["Vitamin C foods", "Zinc-rich foods", "Garlic", "Mushrooms", "Probiotics"],
                avoid=["Excess sugar", "Processed foods", "Alcohol"],
                nutrients=["Vitamin C", "Zinc", "Vitamin D", "Selenium"],
                focus=["Immune-boosting foods", "Gut health support"],
            ),
            # Skin
            self._ailment(
                "acne", "Acne", "skin_beauty", "mild",
                "Clogged pores and skin inflammation",
                ["Breakouts", "Oily skin"],
                beneficial=["Low-glycemic foods", "Omega-3 rich foods", "Zinc-rich foods"],
                avoid=["High-glycemic foods", "Dairy (if sensitive)", "Processed foods"],
                nutrients=["Zinc", "Omega-3s", "Vitamin A"],
                focus=["Low-glycemic diet", "Skin-supporting nutrients"],
            ),
        ]

    def _ailment(self, ailment_id, name, category, severity, description, symptoms,
                 beneficial, avoid, nutrients, focus, disclaimer=None) -> Dict[str, Any]:
        return {
            "id": ailment_id,
            "name": name,
            "category": category,
            "severity": severity,
            "description": description,
            "symptoms": symptoms,
            "support": {
                "beneficialFoods": beneficial,
                "avoidFoods": avoid,
                "keyNutrients": nutrients,
                "focus": focus,
            },
            "medicalDisclaimer": disclaimer,
        }


ailment_catalog = AilmentCatalog()
