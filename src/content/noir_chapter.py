"""
Demo cartridge for the noir engine.

Two locations and two chapters:
- The Daily Grind, a compact cafe where a locked notebook holds the first lead
- A sprawling construction site across town, reached once the lead is read

Everything a test or the REPL needs to exercise the engine is in here: a
password puzzle, hidden items, a lock that can be cut, an enterable
dumpster, a pair of items that combine, and NPCs to talk to.
"""

from __future__ import annotations

from src.models import (
    NPC,
    Chapter,
    ChildRefs,
    ConditionalHint,
    CreateDynamicItem,
    DialogueType,
    Effect,
    Game,
    GameObject,
    HandlerDef,
    HappyPathStep,
    HasFlag,
    HasItem,
    InputSpec,
    Item,
    ItemCapabilities,
    ItemHandlerDef,
    Location,
    Media,
    NoFlag,
    NPCFallbacks,
    NPCState,
    ObjectCapabilities,
    ObjectState,
    Outcome,
    Portal,
    RemoveItem,
    RevealObject,
    SetEntityState,
    SetFlag,
    SpatialMode,
    Topic,
    Verb,
)
from src.models.runtime import EntityRuntimeState

CAFE_ID = "loc_cafe_interior"
SITE_ID = "loc_construction_site"

CHAPTER_CAFE = "ch1-the-cafe"
CHAPTER_SITE = "ch2-the-site"


def _image(path: str, description: str) -> Media:
    return Media(url=f"assets/{path}", description=description)


def _restore_photo() -> list[Effect]:
    """Either half of the photo combines with the other into one picture."""
    return [
        RemoveItem(item_id="item_torn_photo_left"),
        RemoveItem(item_id="item_torn_photo_right"),
        CreateDynamicItem(
            item_id="item_restored_photo",
            name="Restored Photograph",
            alternate_names=["photograph", "restored photo"],
            description="Silas Bloom and a woman at a piano, the tear running between them.",
        ),
    ]


# =============================================================================
# The Daily Grind
# =============================================================================


def _cafe_objects() -> list[GameObject]:
    notebook = GameObject(
        id="obj_brown_notebook",
        name="Brown Notebook",
        alternate_names=["notebook", "leather notebook"],
        description="A worn, leather-bound notebook. It seems to be locked with a phrase.",
        capabilities=ObjectCapabilities(
            openable=True,
            lockable=True,
            movable=True,
            searchable=True,
            container=True,
            inputtable=True,
        ),
        state=ObjectState(is_locked=True),
        children=ChildRefs(items=["item_sd_card", "item_newspaper_article"]),
        media={
            "default": _image("cafe/notebook_locked.png", "A locked notebook."),
            "unlocked": _image("cafe/notebook_unlocked.jpg", "An unlocked notebook."),
        },
        input=InputSpec(
            validation="justice",
            hint="The word is written all over this cafe.",
            success=Outcome(
                message=(
                    "The notebook unlocks with a soft click. Inside, a small SD card "
                    "sits next to a folded newspaper article."
                ),
                effects=[SetFlag(flag="has_unlocked_notebook")],
            ),
            fail=Outcome(message="That password doesn't work. The lock remains stubbornly shut."),
        ),
        handlers={
            Verb.MOVE: HandlerDef(
                success=Outcome(
                    message=(
                        "You slide the notebook around on the table, but there's "
                        "nothing hidden underneath."
                    )
                )
            ),
        },
        fallback_messages={"default": "That's not going to work. It's a key piece of evidence."},
    )

    chalkboard = GameObject(
        id="obj_chalkboard_menu",
        name="Chalkboard Menu",
        alternate_names=["chalkboard", "menu", "board"],
        description="A chalkboard menu propped against the counter, the prices written in a looping hand.",
        capabilities=ObjectCapabilities(readable=True, movable=True),
        excerpts=[
            "Today's special is three scones for the price of two. A deal almost as sweet as justice.",
            "Below the prices, in smaller letters: 'Justice tastes better with cream.'",
        ],
        default_fail_message="The chalkboard is heavier than it looks and wobbles dangerously.",
    )

    bookshelf = GameObject(
        id="obj_bookshelf",
        name="Bookshelf",
        alternate_names=["shelf", "books"],
        description="A tall shelf of second-hand paperbacks for customers to borrow.",
        capabilities=ObjectCapabilities(searchable=True, container=True),
        children=ChildRefs(items=["item_book_justice"]),
        fallback_messages={"examined": "The same dog-eared paperbacks. Nobody reads them."},
    )

    painting = GameObject(
        id="obj_painting",
        name="Painting",
        alternate_names=["painting on the wall", "picture", "frame"],
        description="A murky oil painting of the harbor. It hangs slightly crooked.",
        capabilities=ObjectCapabilities(movable=True, container=True),
        children=ChildRefs(items=["item_business_card"]),
        handlers={
            Verb.MOVE: HandlerDef(
                success=Outcome(
                    message=(
                        "You lift the painting off its hook. A business card is tucked "
                        "into the back of the frame."
                    ),
                    effects=[RevealObject(entity_id="item_business_card", revealed_by="obj_painting")],
                ),
            ),
        },
        fallback_messages={"examined": "The harbor is still murky. The frame still hangs crooked."},
    )

    wall_safe = GameObject(
        id="obj_wall_safe",
        name="Wall Safe",
        alternate_names=["safe", "keypad"],
        description=(
            "A small safe set into the wall behind the counter. Someone has scratched "
            "the word JUSTICE into the paint above the keypad."
        ),
        capabilities=ObjectCapabilities(
            openable=True, lockable=True, searchable=True, container=True, inputtable=True
        ),
        state=ObjectState(is_locked=True),
        children=ChildRefs(items=["item_hidden_note"]),
        input=InputSpec(type="digits", validation="1947", hint="Four digits. A year, maybe."),
        default_fail_message="The safe is bolted into the wall.",
    )

    floor = GameObject(
        id="obj_cafe_floor",
        name="Cafe Floor",
        alternate_names=["floor"],
        description="Black and white tiles, still wet where the rain came in.",
        capabilities=ObjectCapabilities(container=True),
        focusable=False,
    )

    return [notebook, chalkboard, bookshelf, painting, wall_safe, floor]


def _cafe_items() -> list[Item]:
    return [
        Item(
            id="item_sd_card",
            name="SD Card",
            alternate_names=["card", "memory card"],
            description="A small SD card. Something is recorded on it.",
            parent_id="obj_brown_notebook",
            initially_revealed=False,
            capabilities=ItemCapabilities(usable=True),
            use_handlers=[
                ItemHandlerDef(
                    item_id="item_phone",
                    success=Outcome(
                        message=(
                            "You slot the SD card into your phone. A grainy video shows a man "
                            "in a black coat leaving the cafe with a saxophone case."
                        ),
                        effects=[SetFlag(flag="viewed_sd_card")],
                    ),
                )
            ],
        ),
        Item(
            id="item_newspaper_article",
            name="Newspaper Article",
            alternate_names=["article", "newspaper", "clipping"],
            description="A folded newspaper clipping, yellow with age.",
            parent_id="obj_brown_notebook",
            initially_revealed=False,
            capabilities=ItemCapabilities(readable=True),
            media={"default": _image("cafe/article.png", "A yellowed newspaper clipping.")},
            handlers={
                Verb.READ: HandlerDef(
                    success=Outcome(
                        message=(
                            "MUSICIAN FOUND DEAD AT CONSTRUCTION SITE. Silas Bloom, 34, was "
                            "discovered at the foot of the scaffolding on Harbor Street."
                        ),
                        effects=[SetFlag(flag="has_read_article")],
                    )
                ),
            },
        ),
        Item(
            id="item_book_justice",
            name="Justice for My Love",
            alternate_names=["book", "paperback", "justice book"],
            description="A paperback romance with a cracked spine.",
            parent_id="obj_bookshelf",
            initially_revealed=False,
            capabilities=ItemCapabilities(readable=True),
            excerpts=[
                "'Justice,' she whispered, 'is the only thing they can't take from us.'",
                "Someone has underlined a line in pencil: 'He wrote it down so he would never forget.'",
            ],
        ),
        Item(
            id="item_business_card",
            name="Business Card",
            alternate_names=["card"],
            description="A business card for 'Bloom & Daughter, Saxophone Repair'. A phone number is crossed out.",
            parent_id="obj_painting",
            initially_revealed=False,
            gated_message="If there's a business card around here, it's well hidden.",
            media={"default": _image("cafe/business_card.png", "A business card.")},
        ),
        Item(
            id="item_hidden_note",
            name="Hidden Note",
            alternate_names=["note"],
            description='A small note, folded neatly. It reads: "He knows. Find the flower with a broken heart."',
            parent_id="obj_wall_safe",
            initially_revealed=False,
            capabilities=ItemCapabilities(readable=True),
        ),
        Item(
            id="item_phone",
            name="Phone",
            alternate_names=["cell phone", "mobile"],
            description="Your phone. The battery is holding up, for now.",
            capabilities=ItemCapabilities(usable=True),
        ),
        Item(
            id="item_torn_photo_left",
            name="Left Half of a Photo",
            alternate_names=["left half", "torn photo", "photo"],
            description="The left half of a torn photograph: a woman's hand resting on a piano.",
            capabilities=ItemCapabilities(combinable=True),
            combine_handlers=[
                ItemHandlerDef(
                    item_id="item_torn_photo_right",
                    success=Outcome(
                        message=(
                            "You line up the torn edges. Silas Bloom smiles out of the "
                            "picture, his arm around a woman at a piano."
                        ),
                        effects=_restore_photo(),
                    ),
                )
            ],
        ),
    ]


def _barista_topics() -> list[Topic]:
    return [
        Topic(
            topic_id="silas",
            keywords=["silas", "bloom", "musician", "saxophone"],
            once=True,
            trust_change=10,
            response=Outcome(
                message=(
                    "Silas Bloom? Sax player. Used to sit in the corner booth scribbling in "
                    "a notebook like the world was ending. Haven't seen him in weeks."
                ),
                effects=[SetFlag(flag="asked_barista_about_silas")],
            ),
        ),
        Topic(
            topic_id="notebook",
            keywords=["notebook", "password"],
            conditions=[HasFlag(flag="asked_barista_about_silas")],
            min_trust=10,
            once=True,
            trust_change=5,
            set_stage="confided",
            response=Outcome(
                message=(
                    "He left that notebook behind. Kept saying there was one word nobody "
                    "could take from him. Justice. Real poetic."
                ),
            ),
        ),
        Topic(
            topic_id="coffee",
            keywords=["coffee", "espresso", "latte"],
            response=Outcome(
                message="Black, like the rest of this city. It's on the house if you stop staring."
            ),
        ),
    ]


def _cafe_npcs() -> list[NPC]:
    return [
        NPC(
            id="npc_barista",
            name="Barista",
            alternate_names=["barman", "coffee guy"],
            description=(
                "A tired-looking man in his late 20s, with faded tattoos and a cynical "
                "arch to his eyebrow."
            ),
            persona="A tired, cynical barista who has seen it all and wants to get back to work.",
            initial_state=NPCState(trust=0, attitude="neutral"),
            welcome_message="What can I get for you? Or are you just here to brood? Either is fine.",
            start_conversation_effects=[SetFlag(flag="has_talked_to_barista")],
            image=_image("cafe/barista.png", "A portrait of the cafe barista."),
            topics=_barista_topics(),
            fallbacks=NPCFallbacks(
                default="Look, I just make the coffee.",
                off_topic="Not my department. Coffee, yes. Whatever that was, no.",
                no_more_help="I told you everything I know. Drink your coffee.",
                guarded="Why would I tell you that? I don't even know you.",
            ),
        ),
        NPC(
            id="npc_manager",
            name="Cafe Manager",
            alternate_names=["manager", "brenda"],
            description="A cheerful woman in her late 40s, with a permanent, slightly-too-wide smile.",
            persona="Brenda, the relentlessly cheerful manager of The Daily Grind.",
            dialogue_type=DialogueType.FREEFORM,
            fallbacks=NPCFallbacks(default="Oh, I wouldn't know anything about that! Muffin?"),
            max_interactions=6,
            interaction_limit_response="I really must get back to the register, dear!",
            initial_state=NPCState(trust=50, attitude="friendly"),
            welcome_message="Welcome to The Daily Grind! Can I interest you in a Sunshine Muffin?",
        ),
    ]


# =============================================================================
# Construction Site
# =============================================================================


def _cut_zip_ties() -> Outcome:
    return Outcome(
        message="The box cutter bites through the zip ties one by one. The scaffolding door swings loose.",
        effects=[
            SetEntityState(
                entity_id="obj_scaffolding_zip_ties", patch=EntityRuntimeState(is_broken=True)
            ),
            SetFlag(flag="cut_zip_ties"),
        ],
    )


def _site_objects() -> list[GameObject]:
    zip_ties = GameObject(
        id="obj_scaffolding_zip_ties",
        name="Zip Ties",
        alternate_names=["zip tie", "ties", "scaffolding", "scaffold"],
        description=(
            "A cage of scaffolding, its gate cinched shut with a fistful of heavy "
            "plastic zip ties. Something yellow sits inside."
        ),
        capabilities=ObjectCapabilities(lockable=True, breakable=True, container=True),
        state=ObjectState(is_locked=True, is_open=True),
        children=ChildRefs(items=["item_hard_hat"]),
        item_handlers={
            Verb.BREAK: [ItemHandlerDef(item_id="item_box_cutter", success=_cut_zip_ties())],
            Verb.USE: [ItemHandlerDef(item_id="item_box_cutter", success=_cut_zip_ties())],
        },
        media={
            "default": _image("site/zip_ties.png", "Scaffolding cinched with zip ties."),
            "broken": _image("site/zip_ties_cut.png", "Cut zip ties hanging loose."),
        },
    )

    dumpster = GameObject(
        id="obj_dumpster",
        name="Dumpster",
        alternate_names=["bin", "skip", "trash"],
        description="A rusted green dumpster, lid thrown back. It's half full of cafe trash.",
        capabilities=ObjectCapabilities(climbable=True, searchable=True, container=True),
        children=ChildRefs(items=["item_box_cutter", "item_torn_photo_right"]),
        inside_flag="inside_dumpster",
        handlers={
            Verb.SMELL: HandlerDef(
                success=Outcome(
                    message=(
                        "Wet cardboard and old coffee grounds. Somebody's been dumping "
                        "the cafe's trash here."
                    )
                )
            ),
        },
    )

    gravel = GameObject(
        id="obj_site_gravel",
        name="Gravel Lot",
        alternate_names=["gravel", "ground"],
        description="Loose gravel and puddles.",
        capabilities=ObjectCapabilities(container=True),
        focusable=False,
    )

    return [zip_ties, dumpster, gravel]


def _site_items() -> list[Item]:
    return [
        Item(
            id="item_hard_hat",
            name="Hard Hat",
            alternate_names=["hat", "helmet"],
            description="A yellow hard hat. Stenciled inside the brim: S. BLOOM.",
            parent_id="obj_scaffolding_zip_ties",
            handlers={
                Verb.TAKE: HandlerDef(
                    success=Outcome(
                        message="You pull the hard hat free. Stenciled inside the brim: S. BLOOM.",
                        effects=[SetFlag(flag="has_hard_hat")],
                    )
                ),
            },
        ),
        Item(
            id="item_box_cutter",
            name="Box Cutter",
            alternate_names=["cutter", "blade", "knife"],
            description="A cheap box cutter with a fresh blade.",
            parent_id="obj_dumpster",
            capabilities=ItemCapabilities(usable=True),
        ),
        Item(
            id="item_torn_photo_right",
            name="Right Half of a Photo",
            alternate_names=["right half", "torn photo", "photo"],
            description="The right half of a torn photograph: a man with a saxophone.",
            parent_id="obj_dumpster",
            capabilities=ItemCapabilities(combinable=True),
            combine_handlers=[
                ItemHandlerDef(
                    item_id="item_torn_photo_left",
                    success=Outcome(
                        message="The right half overlaps the left. The picture comes back together.",
                        effects=_restore_photo(),
                    ),
                )
            ],
        ),
    ]


def _site_npcs() -> list[NPC]:
    return [
        NPC(
            id="npc_watchman",
            name="Night Watchman",
            alternate_names=["watchman", "guard"],
            description="An old man in a reflective vest, nursing a thermos by the gate.",
            persona=(
                "A night watchman near retirement who has seen a musician hanging around "
                "the site after hours and would rather not get involved."
            ),
            dialogue_type=DialogueType.FREEFORM,
            fallbacks=NPCFallbacks(default="Keep your voice down. Some of us are working."),
            welcome_message="Site's closed, pal. Unless you're here about the musician.",
        ),
    ]


# =============================================================================
# Locations, Portals and Chapters
# =============================================================================


def _locations() -> list[Location]:
    return [
        Location(
            id=CAFE_ID,
            name="The Daily Grind",
            scene_description=(
                "You are inside The Daily Grind. It's a bustling downtown cafe, smelling "
                "of coffee and rain."
            ),
            scene_image=_image("cafe/interior.jpg", "The cafe interior."),
            objects=[
                "obj_brown_notebook",
                "obj_chalkboard_menu",
                "obj_bookshelf",
                "obj_painting",
                "obj_wall_safe",
            ],
            items=[],
            npcs=["npc_barista", "npc_manager"],
            zone_storage_id="obj_cafe_floor",
        ),
        Location(
            id=SITE_ID,
            name="Construction Site",
            scene_description=(
                "A half-built tower looms over a muddy lot on Harbor Street. Floodlights "
                "buzz over the scaffolding."
            ),
            spatial_mode=SpatialMode.SPRAWLING,
            objects=["obj_scaffolding_zip_ties", "obj_dumpster"],
            npcs=["npc_watchman"],
            zone_storage_id="obj_site_gravel",
            transition_templates=[
                "You pick your way across the mud to the {entity}.",
                "You step around a puddle of rust-colored water and reach the {entity}.",
            ],
        ),
    ]


def _portals() -> list[Portal]:
    return [
        Portal(
            id="portal_cafe_to_site",
            name="Back Alley",
            alternate_names=["alley", "back door", "construction site"],
            from_location_id=CAFE_ID,
            to_location_id=SITE_ID,
            reveal_flag="has_read_article",
        ),
        Portal(
            id="portal_site_to_cafe",
            name="Harbor Street",
            alternate_names=["street", "cafe"],
            from_location_id=SITE_ID,
            to_location_id=CAFE_ID,
        ),
    ]


def _chapters() -> list[Chapter]:
    cafe = Chapter(
        id=CHAPTER_CAFE,
        title="A Blast from the Past",
        goal="Unlock the contents of the notebook.",
        start_location_id=CAFE_ID,
        starting_items=["item_phone", "item_torn_photo_left"],
        happy_path=[
            HappyPathStep(
                id="talk_barista",
                order=1,
                description="Talk to the barista",
                completion_flags=["has_talked_to_barista"],
                base_hint="The barista might know something about the man who left the notebook.",
            ),
            HappyPathStep(
                id="unlock_notebook",
                order=2,
                description="Unlock the notebook",
                completion_flags=["has_unlocked_notebook"],
                base_hint="The notebook is locked with a phrase. The chalkboard menu might give you an idea.",
                detailed_hint="Examine the notebook, then say the word written all over this cafe: justice.",
                conditional_hints=[
                    ConditionalHint(
                        conditions=[
                            HasFlag(flag="examined_obj_brown_notebook"),
                            NoFlag(flag="has_unlocked_notebook"),
                        ],
                        hint="You've looked the notebook over. What word keeps turning up in this cafe?",
                    )
                ],
            ),
            HappyPathStep(
                id="read_article",
                order=3,
                description="Read the newspaper article",
                completion_flags=["has_read_article"],
                base_hint="Read the newspaper article that was tucked inside the notebook.",
            ),
        ],
        post_chapter_message=(
            "Looks like we've got everything from this place. The article points to a "
            "construction site on Harbor Street."
        ),
        next_chapter_id=CHAPTER_SITE,
    )

    site = Chapter(
        id=CHAPTER_SITE,
        title="Harbor Street",
        goal="Find out what Silas Bloom left at the construction site.",
        start_location_id=SITE_ID,
        starting_items=["item_phone"],
        happy_path=[
            HappyPathStep(
                id="cut_zip_ties",
                order=1,
                description="Get through the zip ties",
                completion_flags=["cut_zip_ties"],
                base_hint="Those zip ties won't give with bare hands. The dumpster might have something sharp.",
                conditional_hints=[
                    ConditionalHint(
                        conditions=[HasItem(item_id="item_box_cutter")],
                        hint="You've got a box cutter. Try it on the zip ties.",
                    )
                ],
            ),
            HappyPathStep(
                id="take_hard_hat",
                order=2,
                description="Take the hard hat",
                completion_flags=["has_hard_hat"],
                base_hint="Whatever was behind the zip ties is within reach now.",
            ),
        ],
    )
    return [cafe, site]


def create_noir_cartridge() -> Game:
    """
    Build the demo cartridge.

    Returns:
        A validated Game starting in the cafe chapter
    """
    return Game(
        id="justice-for-silas-bloom",
        title="Justice for Silas Bloom",
        narrator_name="Agent Sharma",
        start_chapter_id=CHAPTER_CAFE,
        locations=_locations(),
        game_objects=[*_cafe_objects(), *_site_objects()],
        items=[*_cafe_items(), *_site_items()],
        npcs=[*_cafe_npcs(), *_site_npcs()],
        portals=_portals(),
        chapters=_chapters(),
    )
