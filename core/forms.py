from django.contrib.auth.forms import UserCreationForm, UserChangeForm
from .models import CustomUser


# ==============================================================================
# USER FORMS (admin)
# ==============================================================================
class CustomUserCreationForm(UserCreationForm):
    """Admin registration form for the custom user model."""

    class Meta(UserCreationForm.Meta):
        model = CustomUser
        fields = ('username', 'email', 'is_admin')


class CustomUserChangeForm(UserChangeForm):
    """Admin form for editing existing users."""

    class Meta:
        model = CustomUser
        fields = ('username', 'email', 'first_name', 'last_name', 'is_admin', 'is_active')
