from core.api import api_view, json_body, ok, validated_form
from .forms import ChatTurnForm
from .services import handle_turn


@api_view(methods=["POST"], optional_auth=True)
def gemini(request):
    form = validated_form(ChatTurnForm, json_body(request))
    return ok(handle_turn(request.auth_user, form.cleaned_data["message"], form.history))
