from django.contrib import admin

from .models import Brand


@admin.register(Brand)
class BrandAdmin(admin.ModelAdmin):
    list_display = ('name', 'slug', 'owner', 'subscription_status', 'created_at')
    search_fields = ('name', 'slug', 'owner__username', 'owner__email')
    list_select_related = ('owner', 'subscription', 'subscription__plan')
    raw_id_fields = ('owner', 'subscription')
    prepopulated_fields = {'slug': ('name',)}
    readonly_fields = ('id', 'created_at', 'updated_at')

    @admin.display(description='Subscription')
    def subscription_status(self, obj):
        if not obj.subscription:
            return '-'
        return f"{obj.subscription.plan.name} ({obj.subscription.get_status_display()})"
