"""
Demo account content: a parent managing both the kids' schedule and the care
of an aging mother.

1. "Your Family": kids' activities, school and sport
2. "Mom's Care Calendar": caregivers, appointments, medications and pay

Everything is written through the Storage interface, so the same seeder works
against either engine. Demo users are routed to the memory engine.
"""

from datetime import datetime, timedelta
from typing import Dict, List, Optional
import logging

from app.core.errors import InvalidOperationError
from app.storage.base import Storage
from app.modules.users.schemas import UserUpsert
from app.modules.families.schemas import FamilyCreate, FamilyUpdate
from app.modules.family_members.schemas import FamilyMemberCreate
from app.modules.events.schemas import EventCreate, EventNoteCreate
from app.modules.medications.schemas import MedicationCreate, MedicationLogCreate
from app.modules.messages.schemas import FamilyMessageCreate
from app.modules.caregivers.schemas import PayRateSet, TimeEntryCreate

logger = logging.getLogger(__name__)

FAMILY_NAME = "Your Family"
CARE_FAMILY_NAME = "Mom's Care Calendar"

FAMILY_PHOTOS = {
    "soccer_game": "/attached_assets/stock_images/child_playing_soccer.jpg",
    "movie_night": "/attached_assets/stock_images/family_watching_movie.jpg",
    "piano_recital": "/attached_assets/stock_images/child_playing_piano.jpg",
    "family_dinner": "/attached_assets/stock_images/family_dinner_table.jpg",
    "beach_day": "/attached_assets/stock_images/family_beach_day.jpg",
}

CARE_PHOTOS = {
    "nurse_visit": "/attached_assets/stock_images/nurse_visiting_elder.jpg",
    "physical_therapy": "/attached_assets/stock_images/elderly_physical_therapy.jpg",
    "doctor_visit": "/attached_assets/stock_images/doctor_elderly_patient.jpg",
    "family_visit": "/attached_assets/stock_images/elderly_grandmother.jpg",
}

FAMILY_MEMBERS = {
    "mom": ("You (Sarah)", "#E879F9"),
    "dad": ("Michael", "#2DD4BF"),
    "daughter": ("Emma", "#F472B6"),
    "son": ("Lucas", "#60A5FA"),
}

CARE_MEMBERS = {
    "grandma": ("Dorothy (Mom)", "#F59E0B"),
    "coordinator": ("You (Sarah)", "#E879F9"),
    "brother": ("David (Brother)", "#34D399"),
    "aide": ("Maria (Home Aide)", "#EC4899"),
    "therapist": ("James (PT)", "#8B5CF6"),
}

# (title, description, day offset, start (h, m), end (h, m), members, color of, photo, completed)
FAMILY_EVENTS = [
    ("Emma's Soccer Championship",
     "What a game! Emma scored the winning goal in overtime. The whole team celebrated!",
     -3, (14, 0), (16, 0), ["daughter", "mom", "dad"], "daughter", FAMILY_PHOTOS["soccer_game"], False),
    ("Family Movie Night",
     "Watched the new animated movie with homemade popcorn. Lucas picked the movie this time!",
     -5, (19, 0), (21, 30), ["mom", "dad", "daughter", "son"], "mom", FAMILY_PHOTOS["movie_night"], False),
    ("Lucas's Piano Recital",
     "His first big performance! He played 'Fur Elise' perfectly. So proud of his practice!",
     -7, (15, 0), (16, 30), ["son", "mom", "dad", "daughter"], "son", FAMILY_PHOTOS["piano_recital"], False),
    ("School Drop-off",
     "Emma has early math club, Lucas regular drop-off",
     0, (7, 30), (8, 15), ["mom", "daughter", "son"], "mom", None, True),
    ("Grocery Run",
     "Need items for Sunday dinner at Grandma Dorothy's",
     0, (10, 0), (11, 30), ["mom"], "mom", None, False),
    ("Lucas Soccer Practice",
     "Don't forget shin guards! Coach mentioned early pickup today",
     0, (16, 0), (17, 30), ["son", "dad"], "son", None, False),
    ("Emma's Dentist Checkup",
     "Regular 6-month cleaning at Dr. Chen's office",
     1, (9, 0), (10, 0), ["daughter", "mom"], "daughter", None, False),
    ("Parent-Teacher Conference",
     "Meeting with Lucas's teacher Mrs. Rodriguez about his reading progress",
     2, (16, 0), (17, 0), ["mom", "dad"], "son", None, False),
    ("Family Dinner at Grandma's",
     "Sunday dinner with Grandma Dorothy, bringing her favorite apple pie!",
     3, (17, 0), (20, 0), ["mom", "dad", "daughter", "son"], "mom", FAMILY_PHOTOS["family_dinner"], False),
    ("Emma's Ballet Dress Rehearsal",
     "Spring recital is next week, full costume required",
     4, (16, 0), (18, 0), ["daughter", "mom"], "daughter", None, False),
    ("Date Night",
     "Babysitter confirmed! Trying that new Italian place downtown",
     5, (19, 0), (23, 0), ["mom", "dad"], "mom", None, False),
    ("Lucas's Basketball Tournament",
     "All-day tournament at Riverside Community Center. Pack snacks!",
     6, (9, 0), (16, 0), ["son", "dad", "mom"], "son", None, False),
    ("Beach Day Adventure",
     "End of school year celebration! Sunscreen, towels, and sandcastle supplies",
     7, (10, 0), (17, 0), ["mom", "dad", "daughter", "son"], "dad", FAMILY_PHOTOS["beach_day"], False),
]

CARE_EVENTS = [
    ("Physical Therapy Session",
     "Great progress today! Mom walked 50 feet with the walker. James said her strength is improving.",
     -2, (10, 0), (11, 0), ["grandma", "therapist"], "therapist", CARE_PHOTOS["physical_therapy"], True),
    ("Cardiology Follow-up",
     "Dr. Patel is pleased with her heart rhythm. Medication is working well. Next checkup in 3 months.",
     -4, (14, 0), (15, 30), ["grandma", "coordinator"], "grandma", CARE_PHOTOS["doctor_visit"], True),
    ("Grandkids Visit",
     "Emma and Lucas came to see Grandma! They played cards and she taught them to make cookies.",
     -5, (15, 0), (18, 0), ["grandma", "coordinator"], "grandma", CARE_PHOTOS["family_visit"], True),
    ("Morning Medication",
     "Blood pressure meds, heart medication, and vitamin D. Take with breakfast.",
     0, (8, 0), (8, 30), ["grandma", "aide"], "aide", None, True),
    ("Maria - Morning Care",
     "Help with bathing, breakfast prep, and light housekeeping. Check medication box is organized.",
     0, (9, 0), (12, 0), ["grandma", "aide"], "aide", CARE_PHOTOS["nurse_visit"], False),
    ("Lunch + Afternoon Meds",
     "Light lunch, afternoon heart medication. Maria leaves at 12, David checking in by phone at 2pm.",
     0, (12, 0), (13, 0), ["grandma"], "grandma", None, False),
    ("David's Phone Check-in",
     "Brother calling to chat and make sure Mom is comfortable. She loves hearing about his garden!",
     0, (14, 0), (14, 30), ["grandma", "brother"], "brother", None, False),
    ("Evening Medication",
     "Evening heart meds and sleep aid. You'll stop by to help with dinner.",
     0, (18, 0), (19, 0), ["grandma", "coordinator"], "coordinator", None, False),
    ("Physical Therapy - James",
     "Working on balance exercises and stair climbing. Goal: independent outdoor walking",
     1, (10, 0), (11, 0), ["grandma", "therapist"], "therapist", None, False),
    ("Maria - Morning Care",
     "Regular morning routine. Will prep meals for the next two days.",
     1, (9, 0), (12, 0), ["grandma", "aide"], "aide", None, False),
    ("Podiatrist Appointment",
     "Foot care checkup, important for diabetes management. David is driving.",
     2, (11, 0), (12, 0), ["grandma", "brother"], "grandma", None, False),
    ("Social Worker Visit - Helen",
     "Quarterly check-in to review care plan and discuss any additional support needs.",
     3, (14, 0), (15, 0), ["grandma", "coordinator"], "coordinator", None, False),
    ("Family Dinner at Mom's",
     "Everyone coming over! Kids excited to see Grandma. Bringing the apple pie she loves.",
     3, (17, 0), (20, 0), ["grandma", "coordinator", "brother"], "grandma", None, False),
    ("Physical Therapy - James",
     "Continuing balance work. If weather is nice, will practice outdoor walking.",
     4, (10, 0), (11, 0), ["grandma", "therapist"], "therapist", None, False),
    ("Ophthalmologist - Glaucoma Check",
     "Annual eye exam. You're taking Mom. Bring current medication list.",
     5, (9, 0), (10, 30), ["grandma", "coordinator"], "grandma", None, False),
    ("Pharmacy - Prescription Refills",
     "Pick up monthly medications. Blood pressure, heart meds, vitamin D, and sleep aid.",
     6, (10, 0), (10, 30), ["coordinator"], "coordinator", None, False),
    ("Maria - Extended Care Day",
     "Maria staying longer so you can attend Lucas's tournament. Will handle all meals and meds.",
     6, (8, 0), (18, 0), ["grandma", "aide"], "aide", None, False),
]

MEDICATIONS = [
    ("Lisinopril", "10 mg", "Once daily", "Take with breakfast", ["08:00"]),
    ("Metoprolol", "25 mg", "Twice daily", "Heart rhythm; do not skip", ["08:00", "18:00"]),
    ("Vitamin D3", "2000 IU", "Once daily", None, ["08:00"]),
    ("Melatonin", "3 mg", "At bedtime", "Only if she has trouble sleeping", ["21:00"]),
]

MARIA_HOURLY_RATE = 28.0


def _at(today: datetime, day_offset: int, hm) -> datetime:
    return today + timedelta(days=day_offset, hours=hm[0], minutes=hm[1])


def _create_members(storage: Storage, family_id: str, members: Dict[str, tuple]) -> Dict[str, object]:
    return {
        key: storage.create_family_member(family_id, FamilyMemberCreate(name=name, color=color))
        for key, (name, color) in members.items()
    }


def _create_events(storage: Storage, family_id: str, members: Dict[str, object], today: datetime, rows) -> List:
    events = []
    for title, description, offset, start, end, member_keys, color_of, photo, completed in rows:
        events.append(storage.create_event(family_id, EventCreate(
            title=title,
            description=description,
            start_time=_at(today, offset, start),
            end_time=_at(today, offset, end),
            member_ids=[members[k].id for k in member_keys],
            color=members[color_of].color,
            photo_url=photo,
            completed=completed,
        )))
    return events


def _find(events: List, title: str):
    return next(e for e in events if e.title == title)


def _add_helper_user(storage: Storage, family_id: str, user_id: str, first_name: str, role: str) -> str:
    storage.upsert_user(UserUpsert(
        id=user_id,
        email=f"{user_id}@example.com",
        first_name=first_name,
        auth_provider="demo",
    ), ensure_family=False)
    storage.add_family_membership(family_id, user_id, role)
    return user_id


def seed_demo_account(storage: Storage, user_id: str, now: Optional[datetime] = None) -> bool:
    """
    Fill a freshly provisioned demo user with sample content.
    Returns False without writing anything once the care calendar exists.
    Leftovers of an attempt that failed before that point are cleared first.
    """
    families = storage.get_user_families(user_id)
    if not families:
        raise InvalidOperationError(f"No families found for user {user_id}")
    if any(f.name == CARE_FAMILY_NAME for f in families):
        logger.info(f"Demo account {user_id} already seeded, skipping")
        return False

    leftovers = storage.get_family_members(families[0].id)
    if leftovers:
        logger.warning(f"Demo account {user_id} was partially seeded, clearing {len(leftovers)} members")
        for member in leftovers:
            storage.delete_family_member(families[0].id, member.id)

    today = (now or datetime.utcnow()).replace(hour=0, minute=0, second=0, microsecond=0)

    # Your Family
    family = storage.update_family(families[0].id, FamilyUpdate(name=FAMILY_NAME))
    members = _create_members(storage, family.id, FAMILY_MEMBERS)
    family_events = _create_events(storage, family.id, members, today, FAMILY_EVENTS)

    soccer = _find(family_events, "Emma's Soccer Championship")
    note = storage.create_event_note(family.id, EventNoteCreate(
        event_id=soccer.id, author_id=user_id,
        content="Coach asked if we can bring orange slices to the next game.",
    ))
    storage.create_event_note(family.id, EventNoteCreate(
        event_id=soccer.id, author_id=user_id,
        content="Signed us up. Bag of oranges is in the garage fridge.",
        parent_note_id=note.id,
    ))

    # Mom's Care Calendar
    care = storage.create_family(user_id, FamilyCreate(name=CARE_FAMILY_NAME))
    care_members = _create_members(storage, care.id, CARE_MEMBERS)
    care_events = _create_events(storage, care.id, care_members, today, CARE_EVENTS)

    maria_id = _add_helper_user(storage, care.id, f"{user_id}-maria", "Maria", "caregiver")
    david_id = _add_helper_user(storage, care.id, f"{user_id}-david", "David", "member")

    therapy = _find(care_events, "Physical Therapy Session")
    note = storage.create_event_note(care.id, EventNoteCreate(
        event_id=therapy.id, author_id=maria_id,
        content="She was tired afterwards, napped for two hours. Ice on the left knee helped.",
    ))
    storage.create_event_note(care.id, EventNoteCreate(
        event_id=therapy.id, author_id=user_id,
        content="Thanks Maria. I'll mention the knee to James on Thursday.",
        parent_note_id=note.id,
    ))

    medications = [
        storage.create_medication(care.id, MedicationCreate(
            member_id=care_members["grandma"].id,
            name=name, dosage=dosage, frequency=frequency,
            instructions=instructions, scheduled_times=times,
        ))
        for name, dosage, frequency, instructions, times in MEDICATIONS
    ]
    for days_ago in (2, 1, 0):
        given_at = today - timedelta(days=days_ago) + timedelta(hours=8, minutes=5)
        for medication in medications[:3]:
            storage.create_medication_log(care.id, MedicationLogCreate(
                medication_id=medication.id,
                administered_by=maria_id,
                administered_at=given_at,
                scheduled_time=today - timedelta(days=days_ago) + timedelta(hours=8),
                status="given",
            ))
    storage.create_medication_log(care.id, MedicationLogCreate(
        medication_id=medications[3].id,
        administered_by=user_id,
        administered_at=today - timedelta(days=1) + timedelta(hours=21),
        scheduled_time=today - timedelta(days=1) + timedelta(hours=21),
        status="skipped",
        notes="Fell asleep on her own",
    ))

    thread = storage.create_family_message(care.id, FamilyMessageCreate(
        author_id=david_id,
        content="I can drive Mom to the podiatrist on Wednesday. What time should I pick her up?",
    ))
    storage.create_family_message(care.id, FamilyMessageCreate(
        author_id=user_id,
        content="Appointment is at 11, so 10:30 is perfect. Thank you!",
        parent_message_id=thread.id,
    ))
    storage.create_family_message(care.id, FamilyMessageCreate(
        author_id=maria_id,
        content="Pill organizer is refilled for the week. We are low on vitamin D.",
    ))

    storage.set_caregiver_pay_rate(care.id, maria_id, PayRateSet(hourly_rate=MARIA_HOURLY_RATE))
    for days_ago in (3, 2, 1):
        day = today - timedelta(days=days_ago)
        storage.create_caregiver_time_entry(care.id, maria_id, TimeEntryCreate(
            start_time=day + timedelta(hours=9),
            end_time=day + timedelta(hours=12, minutes=30),
            notes="Morning care",
        ))

    logger.info(
        f"Demo account seeded: {FAMILY_NAME} with {len(family_events)} events, "
        f"{CARE_FAMILY_NAME} with {len(care_events)} events"
    )
    return True
