from flask_wtf import FlaskForm
from wtforms import IntegerField, StringField, TextAreaField
from wtforms.validators import Length, NumberRange, Optional


class ProjectInputsForm(FlaskForm):
    """Validates the generation parameters a user can set on a project.

    Every field is optional: omitted fields keep their stored value.
    """

    class Meta:
        csrf = False

    title = StringField("Title", validators=[Optional(), Length(max=200)])
    coreConcept = TextAreaField("Core concept", validators=[Optional(), Length(max=4000)])
    genre = StringField("Genre", validators=[Optional(), Length(max=120)])
    subStyle = StringField("Sub-style", validators=[Optional(), Length(max=120)])
    tone = StringField("Tone", validators=[Optional(), Length(max=120)])
    voice = StringField("Voice / POV", validators=[Optional(), Length(max=120)])
    targetAudience = StringField("Target audience", validators=[Optional(), Length(max=120)])
    ageRange = StringField("Age range", validators=[Optional(), Length(max=40)])
    humourLevel = StringField("Humour level", validators=[Optional(), Length(max=40)])
    totalChapters = IntegerField("Total chapters", validators=[Optional(), NumberRange(min=1, max=200)])
    chapterTargetWords = IntegerField(
        "Chapter target words", validators=[Optional(), NumberRange(min=100, max=20000)]
    )
    chapterMinWords = IntegerField("Chapter min words", validators=[Optional(), NumberRange(min=100, max=20000)])
    chapterMaxWords = IntegerField("Chapter max words", validators=[Optional(), NumberRange(min=100, max=20000)])
    characters = TextAreaField("Characters", validators=[Optional(), Length(max=20000)])
    locations = TextAreaField("Locations", validators=[Optional(), Length(max=20000)])
    additionalNotes = TextAreaField("Additional notes", validators=[Optional(), Length(max=20000)])

    def submitted_inputs(self, submitted_keys) -> dict:
        """Return the cleaned values for the fields present in the request."""

        values = {}
        for name in submitted_keys:
            field = self._fields.get(name)
            if field is None:
                continue
            data = field.data
            if isinstance(data, str):
                data = data.strip()
            if data is None:
                continue
            values[name] = data
        return values
