import streamlit as st

from mealscan import GuessSource, InvalidImageError, PhotoNutritionGuesser
from mealscan.config import setup_logging

setup_logging()

st.set_page_config(page_title="mealscan", page_icon="🍽️")

st.title("🍽️ mealscan")
st.subheader("Nutrition estimate from a single photo")

SOURCE_NAMES = {
    GuessSource.BARCODE: "Barcode lookup",
    GuessSource.LABEL_OCR: "Nutrition label",
    GuessSource.REFERENCE_MATCH: "Reference match",
    GuessSource.COLOR_HEURISTIC: "Color heuristic",
}


@st.cache_resource
def get_guesser():
    return PhotoNutritionGuesser.default()


guesser = get_guesser()

uploaded = st.file_uploader("Photo of a meal or package", type=["jpg", "jpeg", "png"])
language = st.selectbox("Label language", ["en", "fr", "de", "es", "it"])

if uploaded and st.button("🔍 Analyze", type="primary"):
    image_bytes = uploaded.getvalue()
    st.image(image_bytes)

    with st.spinner("Analyzing..."):
        try:
            outcome = guesser.analyze(image_bytes, language)
        except InvalidImageError as e:
            st.error(f"Could not read image: {e}")
            st.stop()

    if outcome:
        estimate = outcome.estimate
        st.success(f"Estimated from: {SOURCE_NAMES[outcome.source]}")

        cols = st.columns(4)
        with cols[0]:
            st.metric("Calories", f"{estimate.calories if estimate.calories is not None else 'N/A'}")
        with cols[1]:
            st.metric("Carbs", f"{estimate.carbohydrates or 0}g")
        with cols[2]:
            st.metric("Protein", f"{estimate.protein or 0}g")
        with cols[3]:
            st.metric("Fat", f"{estimate.fat or 0}g")

        with st.expander("More Details"):
            for name, value in estimate.to_dict().items():
                st.write(f"{name.replace('_', ' ').capitalize()}: {value}")

        caption = f"Rotation: {outcome.rotation_degrees}° · Score: {outcome.score:.2f}"
        if outcome.barcode:
            caption += f" · Barcode: {outcome.barcode} ({outcome.barcode_type})"
        if outcome.label:
            caption += f" · Match: {outcome.label}"
        st.caption(caption)
    else:
        st.error("No nutrition estimate found")

with st.sidebar:
    st.header("About")
    st.write(
        "mealscan reads barcodes and nutrition labels when it can see them, "
        "and falls back to visual estimates for plated food."
    )
    st.header("Recent diagnostics")
    for event in guesser.diagnostics.events()[-15:]:
        st.text(event.describe())
