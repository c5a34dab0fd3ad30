import pytest

from registry.exceptions import Conflict, InvalidInput, NotFound
from registry.models import AuditEvent, Donor, Institution
from registry.services import donors

pytestmark = pytest.mark.django_db


def donor(name='Dana', age=30, blood='A+', **extra):
    return {'name': name, 'age': age, 'bloodGroup': blood, 'contact': '+15550001111',
            'address': '1 Elm St', **extra}


def test_register_creates_institution_on_first_use():
    d = donors.register_donor('City Hospital', donor(), actor_id=4)
    assert d.institution.name == 'City Hospital'
    donors.register_donor('City Hospital', donor('Eli'))
    assert Institution.objects.count() == 1
    assert AuditEvent.objects.filter(action='donor_create').count() == 2


def test_age_boundary():
    assert donors.register_donor('Clinic', donor(age=17)).age == 17
    with pytest.raises(InvalidInput):
        donors.register_donor('Clinic', donor(age=16))
    assert Donor.objects.count() == 1


@pytest.mark.parametrize('blood', ['C+', 'A', '', None])
def test_blood_group_must_be_known(blood):
    with pytest.raises(InvalidInput):
        donors.register_donor('Clinic', donor(blood=blood))
    assert not Institution.objects.exists()


def test_blood_group_is_upper_cased():
    assert donors.register_donor('Clinic', donor(blood='ab-')).blood_group == 'AB-'


@pytest.mark.parametrize('missing', ['name', 'contact', 'address', 'age'])
def test_missing_fields_write_nothing(missing):
    fields = donor()
    fields[missing] = ''
    with pytest.raises(InvalidInput):
        donors.register_donor('Clinic', fields)
    assert not Institution.objects.exists()


def test_markup_is_stripped():
    d = donors.register_donor('Clinic', donor(name='<b>Zed</b>'))
    assert d.name == 'Zed'



def test_text_is_stored_as_sent():
    d = donors.register_donor('A & B Hospital', donor(name='Tom & Jerry', address='5th & Main'))
    assert d.institution.name == 'A & B Hospital'
    assert (d.name, d.address) == ('Tom & Jerry', '5th & Main')


def test_stripped_markup_leaves_no_trailing_space():
    inst = donors.create_institution('Clinic <North>')
    assert inst.name == 'Clinic'
    assert donors.delete_institution('Clinic <North>') == 0


def test_institution_name_may_not_contain_slash():
    with pytest.raises(InvalidInput):
        donors.create_institution("St. Mary / Children's")
    with pytest.raises(InvalidInput):
        donors.register_donor('North/South', donor())
    assert not Institution.objects.exists()


def test_listing_groups_by_institution_in_creation_order():
    donors.create_institution('Empty Center')
    a = donors.register_donor('North', donor('A1', blood='O-'))
    donors.register_donor('South', donor('S1'))
    b = donors.register_donor('North', donor('A2'))
    listing = donors.list_donors_by_institution()
    assert list(listing) == ['Empty Center', 'North', 'South']
    assert listing['Empty Center'] == []
    assert [d['id'] for d in listing['North']] == [a.id, b.id]
    assert listing['North'][0] == {
        'id': a.id, 'name': 'A1', 'age': 30, 'bloodGroup': 'O-',
        'contact': '+15550001111', 'address': '1 Elm St',
    }


def test_listing_filters():
    donors.register_donor('North', donor('Olga', blood='O-'))
    donors.register_donor('South', donor('Sam', blood='B+', address='9 Pine Rd'))
    assert list(donors.list_donors_by_institution(blood_group='o-')) == ['North']
    by_text = donors.list_donors_by_institution(query='pine')
    assert [d['name'] for d in by_text['South']] == ['Sam']
    assert 'North' not in by_text


def test_create_institution_duplicate():
    donors.create_institution('Depot')
    with pytest.raises(Conflict):
        donors.create_institution('Depot')
    with pytest.raises(InvalidInput):
        donors.create_institution('   ')


def test_delete_institution_cascades():
    donors.register_donor('Gone', donor('X'))
    donors.register_donor('Gone', donor('Y'))
    kept = donors.register_donor('Stays', donor('Z'))
    assert donors.delete_institution('Gone') == 2
    assert list(Donor.objects.values_list('id', flat=True)) == [kept.id]
    assert 'Gone' not in donors.list_donors_by_institution()
    with pytest.raises(NotFound):
        donors.delete_institution('Gone')


def test_positional_delete_removes_the_listed_donor():
    ids = [donors.register_donor('Ward', donor(n)).id for n in ('P0', 'P1', 'P2')]
    removed = donors.delete_donor_by_positional_index('Ward', '1')
    assert removed == ids[1]
    listing = donors.list_donors_by_institution()['Ward']
    assert [d['id'] for d in listing] == [ids[0], ids[2]]


@pytest.mark.parametrize('index,exc', [('abc', InvalidInput), ('1.5', InvalidInput),
                                       ('3', NotFound), ('-1', NotFound)])
def test_positional_delete_bad_index(index, exc):
    for n in ('P0', 'P1', 'P2'):
        donors.register_donor('Ward', donor(n))
    with pytest.raises(exc):
        donors.delete_donor_by_positional_index('Ward', index)
    assert Donor.objects.count() == 3


def test_positional_delete_unknown_institution():
    with pytest.raises(NotFound):
        donors.delete_donor_by_positional_index('Nowhere', 0)


def test_delete_donor_by_id():
    d = donors.register_donor('Ward', donor())
    donors.delete_donor(d.id)
    with pytest.raises(NotFound):
        donors.delete_donor(d.id)
