from flask import Blueprint, render_template, request, flash, Response, stream_with_context
import json

from ..extensions import limiter
from ..forms import MessageForm
from ..composer import Composer, open_stream
from ..completion import SUGGESTION_PROMPT, get_completion_client
from ..suggestions import SuggestionPanel, INITIAL_MESSAGE_STRING

bp = Blueprint('profile', __name__, url_prefix='/u')

@bp.route('/<string:username>', methods=['GET', 'POST'])
def public_profile(username):
    """Render the anonymous message composer for a user's board."""
    form = MessageForm()
    if request.method == 'POST':
        panel = SuggestionPanel(initial=request.form.get('completion', INITIAL_MESSAGE_STRING))
    else:
        panel = SuggestionPanel(initial=INITIAL_MESSAGE_STRING)
    composer = Composer(username, form, panel)

    if request.method == 'POST':
        if 'suggestion' in request.form:
            composer.select(request.form['suggestion'])
        elif form.suggest.data:
            composer.suggest(get_completion_client())
        elif form.validate_on_submit():
            category, text = composer.send()
            flash(text, category)

    form.completion.data = panel.buffer
    return render_template('public_profile.html', username=username, form=form, panel=panel)

@bp.route('/<string:username>/suggestions')
@limiter.limit("20 per minute")
def stream_suggestions(username):
    """Stream newline-delimited snapshots of the suggestion panel."""
    client = get_completion_client()
    panel = SuggestionPanel()

    def generate():
        for snapshot in panel.run(open_stream(client, SUGGESTION_PROMPT)):
            yield json.dumps(snapshot) + '\n'

    return Response(stream_with_context(generate()), mimetype='application/x-ndjson')
