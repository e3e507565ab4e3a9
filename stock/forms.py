from urllib.parse import quote

from django import forms

from .models import StockItem


class StockItemForm(forms.ModelForm):
    """Add/edit form for a stock item.

    Any two of buying price, profit and MRP are enough: the missing one is
    derived so that ``mrp == buying_price + profit`` holds for stored rows.
    """

    profit = forms.DecimalField(required=False, min_value=0, max_digits=12, decimal_places=2)
    mrp = forms.DecimalField(required=False, min_value=0, max_digits=12, decimal_places=2)

    class Meta:
        model = StockItem
        fields = ['name', 'category', 'buying_price', 'profit', 'mrp', 'image_url', 'quantity']

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['quantity'].required = False

    def clean_name(self):
        name = (self.cleaned_data.get('name') or '').strip()
        if not name:
            raise forms.ValidationError('Name is required.')
        return name

    def clean_category(self):
        return (self.cleaned_data.get('category') or '').strip()

    def clean_buying_price(self):
        value = self.cleaned_data.get('buying_price')
        if value is not None and value < 0:
            raise forms.ValidationError('Buying price cannot be negative.')
        return value

    def clean_quantity(self):
        value = self.cleaned_data.get('quantity')
        return 0 if value is None else value

    def clean(self):
        cleaned = super().clean()
        buying = cleaned.get('buying_price')
        profit = cleaned.get('profit')
        mrp = cleaned.get('mrp')
        if buying is None:
            return cleaned
        if profit is None and mrp is None:
            self.add_error('mrp', 'Provide either the profit or the MRP.')
        elif mrp is None:
            cleaned['mrp'] = buying + profit
        elif profit is None:
            if mrp < buying:
                self.add_error('mrp', 'MRP cannot be lower than the buying price.')
            else:
                cleaned['profit'] = mrp - buying
        elif buying + profit != mrp:
            self.add_error('mrp', 'MRP must equal buying price plus profit.')
        if not cleaned.get('image_url') and cleaned.get('name'):
            cleaned['image_url'] = placeholder_image_url(cleaned['name'])
        return cleaned


def stock_item_initial(item: StockItem) -> dict:
    """Current values of ``item`` in form-field shape, used as the base for partial edits."""
    return {
        'name': item.name,
        'category': item.category,
        'buying_price': item.buying_price,
        'profit': item.profit,
        'mrp': item.mrp,
        'image_url': item.image_url,
        'quantity': item.quantity,
    }


def placeholder_image_url(name: str) -> str:
    return f'https://picsum.photos/seed/{quote(name)}/200'
